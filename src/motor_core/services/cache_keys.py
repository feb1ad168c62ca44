# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Centralized cache key management."""

from beartype import beartype


class CacheKeys:
    """Centralized cache key management."""

    RATE_TABLES_PREFIX = "rate_tables"

    @staticmethod
    @beartype
    def active_rate_tables() -> str:
        """Cache key for the assembled rate tables in force."""
        return f"{CacheKeys.RATE_TABLES_PREFIX}:active"

    @staticmethod
    @beartype
    def rate_tables_pattern() -> str:
        """Pattern matching every rate table key."""
        return f"{CacheKeys.RATE_TABLES_PREFIX}:*"
