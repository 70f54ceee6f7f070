import json

from pydantic import BaseModel
from sqlalchemy import Text, TypeDecorator


class JsonDict(TypeDecorator):
    """A mapping stored as a JSON string.

    Accepts a plain dict or a pydantic model (dumped by field name), and
    always reads back a dict, {} for NULL.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, BaseModel):
            value = value.model_dump()
        return json.dumps(value, sort_keys=True)

    def process_result_value(self, value, dialect):
        if value is None:
            return {}
        return json.loads(value)
