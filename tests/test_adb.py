"""Tests for the adb command channel and its parsers."""

import subprocess
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from adbackup.adb.command import AdbCommand
from adbackup.adb.device import Device, list_devices, parse_devices
from adbackup.adb.package import list_apps, parse_list_apps
from adbackup.adb.transfer import pull, push
from adbackup.backup.options import BackupOptions
from adbackup.errors import ADBError, ADBNotFound

DEVICES_OUTPUT = (
    "List of devices attached\n"
    "emulator-5554          device product:sdk_google_phone_x86 model:Android_SDK_built_for_x86 "
    "device:generic_x86 transport_id:9 \n"
    "192.168.2.100:5555     device product:lineage_oneplus3 model:ONEPLUS_A3003 "
    "device:OnePlus3T transport_id:8\n"
    "\n"
)

PACKAGES_OUTPUT = """package:com.android.smoketest
package:com.android.cts.priv.ctsshim
package:org.cryptomator
    package:com.google.android.youtube
    package:com.google.android.ext.services
    package:com.example.android.livecubes
    package:com.android.providers.telephony
    package:com.google.android.googlequicksearchbox
    package:com.android.provider.calendar
    package:com.android.providers.media
    package:com.google.android.onetimeinitializer
    package:com.google.android.ext.shared
    package:com.android.protips
    package:com.estrongs.android.pop
    package:org.cryptomator.test
    package:com.dropbox.android
    package:com.android.sdksetup
    package:com.ustwo.lwp
    package:com.breel.geswallpapers"""


def _completed(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestAdbCommand:
    """Test building and running adb commands."""
    
    def test_argv_without_device(self):
        """Commands without a device id let adb choose."""
        command = AdbCommand("devices").with_arg("-l")
        
        assert command.argv() == ["adb", "devices", "-l"]
    
    def test_argv_with_device(self):
        """A device id is passed with -s before the command."""
        command = AdbCommand("pull").with_args(["/sdcard/la/", "-a"]).with_device_id("emulator-5554")
        
        assert command.argv() == ["adb", "-s", "emulator-5554", "pull", "/sdcard/la/", "-a"]
    
    def test_builders_return_copies(self):
        """Builder methods never mutate the original command."""
        base = AdbCommand("shell")
        extended = base.with_arg("ls")
        
        assert base.args == []
        assert extended.args == ["ls"]
    
    @patch("adbackup.adb.command.subprocess.run")
    def test_execute_returns_stdout(self, mock_run):
        """Successful commands return their standard output."""
        mock_run.return_value = _completed(stdout="hello\n")
        
        assert AdbCommand("shell", adb_path="/opt/adb").with_arg("echo hello").execute() == "hello\n"
        
        args, kwargs = mock_run.call_args
        assert args[0] == ["/opt/adb", "shell", "echo hello"]
        assert kwargs["check"] is True
        assert "timeout" not in kwargs
    
    @patch("adbackup.adb.command.subprocess.run")
    def test_execute_failure_carries_stderr(self, mock_run):
        """A non-zero exit is raised as ADBError with adb's error output."""
        mock_run.side_effect = subprocess.CalledProcessError(
            1, ["adb", "restore"], output="", stderr="error: no devices/emulators found\n"
        )
        
        with pytest.raises(ADBError) as exc_info:
            AdbCommand("restore").with_arg("x.ab").execute()
        
        assert "no devices/emulators found" in str(exc_info.value)
    
    @patch("adbackup.adb.command.subprocess.run")
    def test_execute_adb_missing(self, mock_run):
        """A missing adb executable is reported as ADBNotFound."""
        mock_run.side_effect = FileNotFoundError("adb")
        
        with pytest.raises(ADBNotFound):
            AdbCommand("devices").execute()


class TestDevices:
    """Test device listing."""
    
    def test_parse_devices(self):
        """Connected devices are parsed into id and details."""
        assert parse_devices(DEVICES_OUTPUT) == [
            Device(
                id="emulator-5554",
                details="product:sdk_google_phone_x86 model:Android_SDK_built_for_x86 "
                        "device:generic_x86 transport_id:9"
            ),
            Device(
                id="192.168.2.100:5555",
                details="product:lineage_oneplus3 model:ONEPLUS_A3003 device:OnePlus3T transport_id:8"
            ),
        ]
    
    def test_parse_no_connected_device(self):
        """Only the header means no devices."""
        assert parse_devices("List of devices attached\n\n\n") == []
    
    def test_parse_skips_unauthorized(self):
        """Devices not in the ``device`` state are ignored."""
        output = "List of devices attached\nR58M123 unauthorized usb:1-1 transport_id:3\n"
        
        assert parse_devices(output) == []
    
    def test_display_name(self):
        """The model is used as display name when present."""
        assert Device("abc", "product:x model:Pixel_7 device:y").display_name == "Pixel_7 (abc)"
        assert Device("abc", "transport_id:1").display_name == "abc"
    
    @patch.object(AdbCommand, "execute", autospec=True)
    def test_list_devices(self, mock_execute):
        """Devices are listed with ``adb devices -l``."""
        mock_execute.return_value = DEVICES_OUTPUT
        
        devices = list_devices()
        
        assert [d.id for d in devices] == ["emulator-5554", "192.168.2.100:5555"]
        command = mock_execute.call_args[0][0]
        assert command.argv() == ["adb", "devices", "-l"]


class TestApps:
    """Test application listing."""
    
    def test_parse_list_apps(self):
        """Platform packages are dropped, everything else is kept in order."""
        assert parse_list_apps(PACKAGES_OUTPUT) == [
            "org.cryptomator",
            "com.example.android.livecubes",
            "com.estrongs.android.pop",
            "org.cryptomator.test",
            "com.dropbox.android",
            "com.ustwo.lwp",
            "com.breel.geswallpapers",
        ]
    
    def test_parse_empty_output(self):
        """No packages yields an empty list."""
        assert parse_list_apps("") == []
    
    @patch.object(AdbCommand, "execute", autospec=True)
    def test_list_apps(self, mock_execute):
        """Applications are listed through the package manager."""
        mock_execute.return_value = "package:org.cryptomator\npackage:com.android.protips\n"
        
        assert list_apps("emulator-5554") == ["org.cryptomator"]
        command = mock_execute.call_args[0][0]
        assert command.argv() == ["adb", "-s", "emulator-5554", "shell", "pm", "list", "packages"]


class TestTransfer:
    """Test file transfer commands."""
    
    @patch.object(AdbCommand, "execute", autospec=True)
    def test_pull(self, mock_execute):
        """Pull keeps timestamps and modes."""
        mock_execute.return_value = "/sdcard/la/: 1 file pulled.\n"
        
        assert pull("emulator-5554", "/sdcard/la/") == "/sdcard/la/: 1 file pulled.\n"
        command = mock_execute.call_args[0][0]
        assert command.argv() == ["adb", "-s", "emulator-5554", "pull", "/sdcard/la/", "-a"]
    
    @patch.object(AdbCommand, "execute", autospec=True)
    def test_push(self, mock_execute):
        """Push copies a local path to the device."""
        mock_execute.return_value = ""
        
        push(None, "notes.txt", "/sdcard/notes.txt")
        command = mock_execute.call_args[0][0]
        assert command.argv() == ["adb", "push", "notes.txt", "/sdcard/notes.txt"]
    
    @patch.object(AdbCommand, "execute", autospec=True)
    def test_pull_failure(self, mock_execute):
        """Transfer failures propagate."""
        mock_execute.side_effect = ADBError("remote object '/sdcard/none' does not exist")
        
        with pytest.raises(ADBError):
            pull("emulator-5554", "/sdcard/none")


class TestBackupOptions:
    """Test ``adb backup`` argument building."""
    
    def test_defaults(self):
        """By default everything optional is excluded and all apps are backed up."""
        assert BackupOptions().to_args() == ["-noapk", "-noshared", "-nosystem", "-all"]
    
    def test_all_flags(self):
        """Enabled flags switch to their inclusive variants."""
        options = BackupOptions(applications=True, shared_storage=True, system_apps=True)
        
        assert options.to_args() == ["-apk", "-shared", "-system", "-all"]
    
    def test_specified_apps(self):
        """Specified apps replace -all."""
        options = BackupOptions(only_specified_apps=["org.cryptomator", "com.dropbox.android"])
        
        assert options.to_args() == ["-noapk", "-noshared", "-nosystem", "org.cryptomator", "com.dropbox.android"]
    
    def test_options_are_frozen(self):
        """Options cannot be changed after creation."""
        options = BackupOptions()
        
        with pytest.raises(ValidationError):
            options.applications = True
