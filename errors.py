"""
errors.py
Exception classes used across EduSys.
"""

from __future__ import annotations


class EduSysError(Exception):
    """Base class for all EduSys errors."""


class StorageReadError(EduSysError):
    """A stored blob is missing or not valid JSON. Recovered inside db.py."""


class StorageWriteError(EduSysError):
    """Writing a blob failed. Logged and swallowed inside db.py."""


class ImportFormatError(EduSysError):
    """A backup file is not valid JSON or does not have the backup shape."""


class NotificationUnavailable(EduSysError):
    """Notifications are unsupported or permission was denied."""
