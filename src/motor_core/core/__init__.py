# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Core infrastructure: settings, persistence, sequencing, locking and caching."""

from .cache import Cache
from .config import Settings, get_settings
from .errors import DomainError, ErrorKind
from .locks import EntityLocks
from .result_types import Err, Ok, Result
from .sequences import DocumentKind, SequenceGenerator
from .store import InMemoryRecordStore, PostgresRecordStore, RecordStore

__all__ = [
    "Cache",
    "DocumentKind",
    "DomainError",
    "EntityLocks",
    "Err",
    "ErrorKind",
    "InMemoryRecordStore",
    "Ok",
    "PostgresRecordStore",
    "RecordStore",
    "Result",
    "SequenceGenerator",
    "Settings",
    "get_settings",
]
