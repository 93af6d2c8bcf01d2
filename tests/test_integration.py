# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Integration tests against a real bootloader.

These tests require a device waiting in its bootloader.
Run with: pytest tests/test_integration.py -v --device /dev/ttyACM0 --firmware firmware.bin
"""

import pytest

from fwpush_protocol import Transport, UpdateSession, read_firmware_file

pytestmark = pytest.mark.integration


@pytest.fixture
def device_port(request):
    port = request.config.getoption("--device")
    if port is None:
        pytest.skip("No device specified (--device)")
    return port


@pytest.fixture
def firmware(request):
    path = request.config.getoption("--firmware")
    if path is None:
        pytest.skip("No firmware image specified (--firmware)")
    return read_firmware_file(path)


class TestFirmwareUpdate:
    """Feature: Update firmware over the serial link."""

    def test_full_update(self, device_port, firmware):
        """Scenario: Push the image and get UPDATE_SUCCESSFUL."""
        progress = []

        with Transport(device_port) as transport:
            UpdateSession(transport).run(
                firmware,
                progress_callback=lambda sent, total: progress.append(sent),
            )

        assert progress[-1] == len(firmware)
