from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar, Union
from bson import ObjectId
from bson.errors import BSONError, InvalidId
from loguru import logger
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from ..exceptions import StorageError, ValidationError

T = TypeVar('T', bound='CollectionRecord')

# Set by DatabaseManager.initialize()
_database = None


def bind_database(manager) -> None:
    """Points every CollectionRecord at the given DatabaseManager (or unbinds with None)."""
    global _database
    _database = manager


def utcnow() -> datetime:
    """Current UTC time at BSON precision (milliseconds)."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


# --- Field Descriptors ---

class Field:
    """Base class for all ORM fields. Stores any value as-is."""
    def __init__(self, default: Any = None, required: bool = False, index: bool = False, unique: bool = False):
        self.name = None # Set by metaclass
        self.default = default
        self.required = required
        self.index = index
        self.unique = unique

    def __get__(self, instance, owner):
        if instance is None: return self
        return instance.get_field_val(self.name, self.get_default())

    def __set__(self, instance, value):
        instance.set_field_val(self.name, self.convert(value))

    def get_default(self) -> Any:
        return self.default() if callable(self.default) else self.default

    def convert(self, value: Any) -> Any:
        return value

    def validate(self, value: Any) -> None:
        if self.required and value is None:
            raise ValidationError(self.name, "field is required")

    def to_mongo(self, value: Any) -> Any:
        return value

    def from_mongo(self, value: Any) -> Any:
        return value

class StringField(Field):
    def convert(self, value: Any) -> Optional[str]:
        if value is None: return None
        return str(value)

class IntField(Field):
    def convert(self, value: Any) -> Optional[int]:
        if value is None: return None
        if isinstance(value, bool):
            raise ValidationError(self.name, f"expected an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(self.name, f"expected an integer, got {value!r}")

class BoolField(Field):
    def convert(self, value: Any) -> Optional[bool]:
        if value is None or isinstance(value, bool): return value
        raise ValidationError(self.name, f"expected a boolean, got {value!r}")

class DateTimeField(Field):
    def convert(self, value: Any) -> Optional[datetime]:
        if value is None or isinstance(value, datetime): return value
        raise ValidationError(self.name, f"expected a datetime, got {value!r}")

class ObjectIdField(Field):
    def convert(self, value: Any) -> Optional[ObjectId]:
        if value is None or isinstance(value, ObjectId): return value
        if isinstance(value, CollectionRecord): return value.id
        try:
            return ObjectId(value)
        except (InvalidId, TypeError):
            raise ValidationError(self.name, f"expected an ObjectId, got {value!r}")


# --- Metaclass & Record ---

class DbRecordMeta(type):
    """Metaclass that sets up the collection name, fields and indexes of a record class."""

    def __new__(cls, name, bases, namespace, **kwargs):
        new_class = super().__new__(cls, name, bases, namespace)

        table = kwargs.get('table', None)
        if table:
            new_class._collection_name = table

        # Harvest fields, inherited ones first
        fields: Dict[str, Field] = {}
        for base in reversed(new_class.__mro__[1:]):
            fields.update(getattr(base, '_fields', {}))
        for k, v in namespace.items():
            if isinstance(v, Field):
                v.name = k # Inject name
                fields[k] = v
        new_class._fields = fields

        # Compound indexes: [(keys, options), ...]
        if 'indexes' in kwargs:
            new_class._indexes = kwargs['indexes']

        return new_class

class CollectionRecord(metaclass=DbRecordMeta):
    _collection_name: str = None
    _fields: Dict[str, Field] = {}
    _indexes: List = []
    # Fields written by insert() and never by update()
    _write_once: tuple = ()

    def __init__(self, oid: Union[str, ObjectId] = None, **kwargs):
        if oid is None:
            oid = kwargs.pop('_id', None) or ObjectId()
        else:
            kwargs.pop('_id', None)
        self._id = ObjectId(oid)
        self._data_cache: Dict[str, Any] = {}

        for k, v in kwargs.items():
            if k in self._fields:
                setattr(self, k, v)
            else:
                self._data_cache[k] = v

    @property
    def id(self) -> ObjectId: return self._id

    def get_field_val(self, name: str, default: Any = None):
        return self._data_cache.get(name, default)

    def set_field_val(self, name: str, value: Any):
        self._data_cache[name] = value

    def to_dict(self) -> Dict[str, Any]:
        """Serializes to MongoDB-ready dict."""
        out = {'_id': self._id}
        for name, field in self._fields.items():
            out[name] = field.to_mongo(getattr(self, name))
        return out

    # --- Hooks ---

    def validate(self) -> None:
        """Runs every field validator, then the record-level clean() hook."""
        for name, field in self._fields.items():
            field.validate(getattr(self, name))
        self.clean()

    def clean(self) -> None:
        """Cross-field validation; override in subclasses."""

    def before_insert(self) -> None:
        pass

    def before_update(self) -> None:
        pass

    # --- Database Operations (Async) ---

    @classmethod
    def get_collection(cls):
        if not cls._collection_name:
            raise ValueError(f"Class {cls.__name__} must define _collection_name or pass table='name'")
        if _database is None:
            raise RuntimeError("Database not initialized. Call DatabaseManager.initialize() first.")
        return _database.get_collection(cls._collection_name)

    @classmethod
    @contextmanager
    def _storage_errors(cls, operation: str):
        """Translates driver failures into StorageError, keeping the original as the cause."""
        try:
            yield
        except (PyMongoError, BSONError) as e:
            logger.error(f"{cls.__name__}: '{operation}' failed on '{cls._collection_name}': {e}")
            raise StorageError(operation, cls._collection_name, e) from e

    @classmethod
    async def ensure_indexes(cls):
        """Creates indexes defined in Fields and in the class `indexes` kwarg."""
        coll = cls.get_collection()
        with cls._storage_errors("create_index"):
            for name, field in cls._fields.items():
                if field.index or field.unique:
                    logger.info(f"Creating index for {cls.__name__}.{name} (unique={field.unique})")
                    await coll.create_index([(name, ASCENDING)], unique=field.unique)

            for keys, options in cls._indexes:
                logger.info(f"Creating compound index for {cls.__name__}: {keys} {options}")
                await coll.create_index(keys, **options)

    @classmethod
    async def get(cls: Type[T], oid: Union[str, ObjectId]) -> Optional[T]:
        if isinstance(oid, str): oid = ObjectId(oid)
        coll = cls.get_collection()
        with cls._storage_errors("find_one"):
            data = await coll.find_one({"_id": oid})
        return cls._instantiate_from_data(data) if data else None

    @classmethod
    async def find(cls: Type[T], query: Dict,
                   sort: Optional[List[tuple]] = None,
                   projection: Optional[Sequence[str]] = None) -> List[T]:
        """
        Find records matching a query.

        :param sort: List of (field, direction) pairs.
        :param projection: Field names to load; `_id` is always included.
        """
        coll = cls.get_collection()
        results = []
        with cls._storage_errors("find"):
            if projection is not None:
                cursor = coll.find(query, {name: 1 for name in projection})
            else:
                cursor = coll.find(query)
            if sort:
                cursor = cursor.sort(sort)
            async for doc in cursor:
                results.append(cls._instantiate_from_data(doc))
        return results

    @classmethod
    async def find_one(cls: Type[T], query: Dict) -> Optional[T]:
        coll = cls.get_collection()
        with cls._storage_errors("find_one"):
            data = await coll.find_one(query)
        return cls._instantiate_from_data(data) if data else None

    @classmethod
    def _instantiate_from_data(cls: Type[T], data: Dict) -> T:
        processed = {}
        for k, v in data.items():
            field = cls._fields.get(k)
            processed[k] = field.from_mongo(v) if field else v
        return cls(**processed)

    async def insert(self):
        """Validates, runs before_insert() and writes a new document."""
        self.validate()
        self.before_insert()
        coll = self.get_collection()
        with self._storage_errors("insert_one"):
            await coll.insert_one(self.to_dict())
        return self

    async def update(self) -> bool:
        """
        Validates, runs before_update() and overwrites the stored fields,
        except those listed in `_write_once`.

        :return: False when no document with this id exists.
        """
        self.validate()
        self.before_update()
        coll = self.get_collection()
        changes = {k: v for k, v in self.to_dict().items() if k != "_id" and k not in self._write_once}
        with self._storage_errors("update_one"):
            result = await coll.update_one({'_id': self._id}, {'$set': changes})
        return result.matched_count > 0

    async def delete(self) -> bool:
        coll = self.get_collection()
        with self._storage_errors("delete_one"):
            result = await coll.delete_one({'_id': self._id})
        return result.deleted_count > 0
