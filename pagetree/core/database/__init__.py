from .manager import DatabaseManager
from .orm import (
    CollectionRecord,
    Field,
    StringField,
    IntField,
    BoolField,
    DateTimeField,
    ObjectIdField,
    bind_database,
)
