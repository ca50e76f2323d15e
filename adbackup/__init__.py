"""
adbackup - A backup tool for Android using adb.

Backs up a device through ``adb backup``, optionally reshapes the encrypted
container into per-application archives, and keeps every backup as a new
version in a per-device SQLite store so the latest one can be restored.
"""

__version__ = "0.1.0"
__author__ = "adbackup Contributors"
