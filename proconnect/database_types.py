"""
Custom SQLAlchemy types for locally persisted state.
"""
import json

from sqlalchemy import Text, TypeDecorator


class JSONText(TypeDecorator):
    """
    JSON document stored as TEXT.
    
    Values are serialized with json.dumps on the way in and parsed back on
    the way out, so the stored column always holds plain JSON text whatever
    the dialect.
    """
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        return json.dumps(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        return json.loads(value)
