"""
SQLite timezone fix for SQLAlchemy
Makes sure all datetime values are timezone-aware
"""
from sqlalchemy import DateTime, TypeDecorator
from datetime import timezone
import dateutil.parser

class TZDateTime(TypeDecorator):
    """A DateTime type that stores UTC and always hands back aware datetimes"""
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            else:
                value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, str):
            # SQLite may hand back the raw string representation
            value = dateutil.parser.parse(value)
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value
