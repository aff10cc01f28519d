"""Column types that behave the same on PostgreSQL and SQLite."""

from datetime import datetime, timezone

from sqlalchemy import ARRAY, JSON, DateTime, Text, TypeDecorator


class TZDateTime(TypeDecorator):
    """Timezone-aware timestamp.

    PostgreSQL stores it as TIMESTAMP WITH TIME ZONE. SQLite has no zone
    support, so values are normalized to UTC on write and re-tagged as UTC
    on read.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            raise ValueError("naive datetime cannot be stored in a timezone-aware column")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


# TEXT[] on Postgres, JSON array on SQLite
TextList = ARRAY(Text()).with_variant(JSON(), "sqlite")
