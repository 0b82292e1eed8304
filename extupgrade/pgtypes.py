"""
PostgreSQL value kinds.

Each kind knows its SQL type, used for the typed NULL placeholder of
version-gated fields, and how to build a Comparable from the value psycopg
returns for a column of that type.
"""

from typing import Any, Iterable

from .compare import KeyedCollection, OrderedList, Scalar, String


class Text(String):
    SQL_TYPE = "text"

    __slots__ = ()

    @classmethod
    def from_sql(cls, raw: Any) -> "Text":
        return cls(str(raw))


class Name(String):
    SQL_TYPE = "name"

    __slots__ = ()

    @classmethod
    def from_sql(cls, raw: Any) -> "Name":
        return cls(str(raw))


class Char(Scalar):
    """
    A single-character code, like pg_class.relkind.

    Depending on the driver configuration the "char" type can come back as
    an int, bytes or str; it is always stored as the printable character.
    """
    SQL_TYPE = '"char"'

    __slots__ = ()

    @classmethod
    def from_sql(cls, raw: Any) -> "Char":
        if isinstance(raw, int):
            return cls(chr(raw & 0xFF))
        if isinstance(raw, (bytes, bytearray, memoryview)):
            return cls(bytes(raw).decode("latin-1"))
        return cls(str(raw))


class Bool(Scalar):
    SQL_TYPE = "boolean"

    __slots__ = ()

    @classmethod
    def from_sql(cls, raw: Any) -> "Bool":
        return cls(bool(raw))

    def describe(self) -> str:
        return "true" if self.value else "false"


class Smallint(Scalar):
    SQL_TYPE = "smallint"

    __slots__ = ()

    @classmethod
    def from_sql(cls, raw: Any) -> "Smallint":
        return cls(int(raw))


class Integer(Scalar):
    SQL_TYPE = "integer"

    __slots__ = ()

    @classmethod
    def from_sql(cls, raw: Any) -> "Integer":
        return cls(int(raw))


class Real(Scalar):
    SQL_TYPE = "real"

    __slots__ = ()

    @classmethod
    def from_sql(cls, raw: Any) -> "Real":
        return cls(float(raw))

    def describe(self) -> str:
        return format(self.value, "g")


class ArrayOf:
    """An array column, compared element by element."""

    def __init__(self, kind: Any):
        self.kind = kind
        self.SQL_TYPE = f"{kind.SQL_TYPE}[]"

    def from_sql(self, raw: Iterable[Any]) -> OrderedList:
        return OrderedList(self.kind.from_sql(item) for item in raw)

    def __repr__(self) -> str:
        return f"ArrayOf({self.kind.__name__})"


NameArray = ArrayOf(Name)
TextArray = ArrayOf(Text)
CharArray = ArrayOf(Char)


class ClassOptions:
    """
    A ``key=value`` text array, like reloptions or proconfig.

    Options are compared by key, order doesn't matter.
    """
    SQL_TYPE = "text[]"
    TYPNAME = "option"

    @classmethod
    def split(cls, item: str) -> "tuple[str, str]":
        key, _, value = item.partition("=")
        return key, value

    @classmethod
    def from_sql(cls, raw: Iterable[str]) -> KeyedCollection:
        options = KeyedCollection(cls.TYPNAME)
        for item in raw:
            key, value = cls.split(item)
            options.add(key, Text(value))
        return options


class ConfigTables(ClassOptions):
    """An extension's configuration tables, as ``table=condition`` items."""
    TYPNAME = "configuration table"


class AclList(ClassOptions):
    """
    Privileges, as the text form of an aclitem[] column.

    Each ``grantee=privileges/grantor`` item is keyed by ``grantee/grantor``,
    an empty grantee being PUBLIC. A role can hold privileges granted by
    several grantors.
    """
    TYPNAME = "privilege"

    @classmethod
    def split(cls, item: str) -> "tuple[str, str]":
        grant, _, grantor = item.rpartition("/")
        grantee, _, privileges = grant.rpartition("=")
        return f"{grantee or 'PUBLIC'}/{grantor}", privileges

