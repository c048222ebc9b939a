"""
Generic data insertion mixin for SQLAlchemy models
Provides from_dict and to_dict methods used by the JSON API and the debug data loader.

Column values are coerced by column type on the way in (ISO strings become
date/time/datetime, numbers become Decimal, strings become enum members) and
serialized back to JSON-safe values on the way out.
"""

import enum
from datetime import date, datetime, time
from decimal import Decimal
from sqlalchemy import inspect
from sqlalchemy import types as sqltypes
from fleet_dispatch import db
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.domain.core.data_insertion")


def _coerce_value(column, value):
    """Convert a raw (JSON-sourced) value to the Python type the column expects"""
    if value is None:
        return None

    column_type = column.type
    if isinstance(column_type, sqltypes.Enum) and column_type.enum_class is not None:
        if isinstance(value, column_type.enum_class):
            return value
        return column_type.enum_class(value)
    if isinstance(column_type, sqltypes.DateTime):
        return value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if isinstance(column_type, sqltypes.Date):
        return value if isinstance(value, date) else date.fromisoformat(value)
    if isinstance(column_type, sqltypes.Time):
        return value if isinstance(value, time) else time.fromisoformat(value)
    if isinstance(column_type, sqltypes.Numeric) and column_type.asdecimal:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    return value


def _serialize_value(value):
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


class DataInsertionMixin:
    """
    Mixin that provides generic data insertion capabilities for SQLAlchemy models

    This mixin adds:
    - from_dict(): Create model instance from dictionary
    - to_dict(): Convert model instance to dictionary
    - find_or_create_from_dict(): Look up by key fields, create if missing
    """

    # Columns never exposed through to_dict()
    _private_columns = frozenset()

    @classmethod
    def from_dict(cls, data_dict, user_id=None, skip_fields=None):
        """
        Create a model instance from a dictionary

        Args:
            data_dict (dict): Dictionary containing model data
            user_id (int, optional): Actor ID for audit fields
            skip_fields (list, optional): Fields to skip during creation

        Returns:
            Model instance (not saved to database)
        """
        if skip_fields is None:
            skip_fields = []

        mapper = inspect(cls)
        columns = {c.key: c for c in mapper.columns}

        filtered_data = {}
        for key, value in data_dict.items():
            if key not in columns or key in skip_fields:
                continue
            if key in ['created_at', 'updated_at'] and value is None:
                continue
            filtered_data[key] = _coerce_value(columns[key], value)

        instance = cls(**filtered_data)

        if user_id is not None:
            if hasattr(instance, 'created_by_id') and not instance.created_by_id:
                instance.created_by_id = user_id
            if hasattr(instance, 'updated_by_id'):
                instance.updated_by_id = user_id

        return instance

    def to_dict(self, include_audit_fields=True):
        """
        Convert model instance to a JSON-safe dictionary

        Args:
            include_audit_fields (bool): Whether to include audit fields

        Returns:
            dict: Dictionary representation of the model
        """
        result = {}
        mapper = inspect(self.__class__)

        for column in mapper.columns:
            if column.key in self._private_columns:
                continue
            if not include_audit_fields and column.key in ['created_at', 'updated_at', 'created_by_id', 'updated_by_id']:
                continue
            result[column.key] = _serialize_value(getattr(self, column.key))

        return result

    @classmethod
    def find_or_create_from_dict(cls, data_dict, user_id=None, skip_fields=None,
                                 lookup_fields=None, commit=True):
        """
        Find existing instance or create new one from dictionary

        Args:
            data_dict (dict): Dictionary containing model data
            user_id (int, optional): Actor ID for audit fields
            skip_fields (list, optional): Fields to skip during creation
            lookup_fields (list, optional): Fields to use for lookup (default: 'id')
            commit (bool): Whether to commit the transaction

        Returns:
            tuple: (instance, created) where created is boolean
        """
        lookup_fields = lookup_fields or ['id']
        mapper = inspect(cls)
        columns = {c.key: c for c in mapper.columns}

        lookup = {
            field: _coerce_value(columns[field], data_dict[field])
            for field in lookup_fields
            if field in data_dict
        }
        if lookup:
            existing = cls.query.filter_by(**lookup).first()
            if existing is not None:
                return existing, False

        instance = cls.from_dict(data_dict, user_id, skip_fields)
        try:
            db.session.add(instance)
            if commit:
                db.session.commit()
                logger.info(f"Created {cls.__name__}: {lookup}")
            return instance, True
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error creating {cls.__name__}: {e}")
            raise
