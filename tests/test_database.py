from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar

import pytest

from oikos.database import Database, RecordNotFound, Repository
from oikos.querying import QueryError


@dataclass
class Parent:
    table_name: ClassVar[str] = "parent"
    id: int = 0
    nombre: str = ""
    activo: bool = False
    creado: datetime | None = None


@dataclass
class Child:
    table_name: ClassVar[str] = "child"
    id: int = 0
    valor: str = ""
    parent_id: Parent | None = None


@pytest.fixture
def db():
    database = Database()
    database.create_tables(Parent, Child)
    yield database
    database.close()


@pytest.fixture
def parents(db):
    return Repository(db, Parent)


@pytest.fixture
def children(db):
    return Repository(db, Child)


def test_add_and_get_round_trip(parents):
    created = datetime(2021, 3, 4, 5, 6, 7)
    record = Parent(nombre="Facultad", activo=True, creado=created)
    new_id = parents.add(record)
    assert record.id == new_id
    assert parents.get(new_id) == Parent(id=new_id, nombre="Facultad", activo=True, creado=created)


def test_ids_increase(parents):
    first = parents.add(Parent(nombre="a"))
    second = parents.add(Parent(nombre="b"))
    assert second > first


def test_get_missing_raises(parents):
    with pytest.raises(RecordNotFound):
        parents.get(42)


def test_update(parents):
    record = Parent(nombre="old")
    parents.add(record)
    record.nombre = "new"
    assert parents.update(record) == 1
    assert parents.get(record.id).nombre == "new"


def test_update_missing_raises(parents):
    with pytest.raises(RecordNotFound):
        parents.update(Parent(id=7, nombre="x"))


def test_delete(parents):
    record_id = parents.add(Parent(nombre="gone"))
    assert parents.delete(record_id) == 1
    with pytest.raises(RecordNotFound):
        parents.get(record_id)
    with pytest.raises(RecordNotFound):
        parents.delete(record_id)


def test_get_returns_related_stub_and_get_all_loads_it(parents, children):
    parent = Parent(nombre="Sede")
    parents.add(parent)
    child = Child(valor="v", parent_id=parent)
    children.add(child)
    assert children.get(child.id).parent_id == Parent(id=parent.id)
    [listed] = children.get_all()
    assert listed.parent_id.nombre == "Sede"


def test_foreign_key_is_enforced(children):
    with pytest.raises(sqlite3.IntegrityError):
        children.add(Child(valor="v", parent_id=Parent(id=99)))


def test_filter_on_related_field(parents, children):
    first = Parent(nombre="Uno")
    second = Parent(nombre="Dos")
    parents.add(first)
    parents.add(second)
    children.add(Child(valor="a", parent_id=first))
    children.add(Child(valor="b", parent_id=second))
    found = children.get_all(query={"ParentId.Nombre": "Dos"})
    assert [child.valor for child in found] == ["b"]
    by_id = children.get_all(query={"parent_id": str(first.id)})
    assert [child.valor for child in by_id] == ["a"]


def test_filter_bool_and_contains(parents):
    parents.add(Parent(nombre="Sala grande", activo=True))
    parents.add(Parent(nombre="Sala chica", activo=False))
    parents.add(Parent(nombre="Patio", activo=True))
    active = parents.get_all(query={"activo": "true"})
    assert [p.nombre for p in active] == ["Sala grande", "Patio"]
    salas = parents.get_all(query={"nombre__icontains": "sala"})
    assert [p.nombre for p in salas] == ["Sala grande", "Sala chica"]


def test_filter_isnull_and_in(parents, children):
    parent = Parent(nombre="p")
    parents.add(parent)
    children.add(Child(valor="orphan"))
    children.add(Child(valor="kid", parent_id=parent))
    assert [c.valor for c in children.get_all(query={"parent_id__isnull": "true"})] == ["orphan"]
    assert [c.valor for c in children.get_all(query={"valor__in": ["kid", "x"]})] == ["kid"]


def test_sorting(parents):
    for name in ["b", "c", "a"]:
        parents.add(Parent(nombre=name))
    ascending = parents.get_all(sortby=["nombre"], order=["asc"])
    descending = parents.get_all(sortby=["nombre"], order=["desc"])
    assert [p.nombre for p in ascending] == ["a", "b", "c"]
    assert [p.nombre for p in descending] == ["c", "b", "a"]


def test_offset_and_limit(parents):
    for name in "abcde":
        parents.add(Parent(nombre=name))
    assert [p.nombre for p in parents.get_all(offset=1, limit=2)] == ["b", "c"]
    assert [p.nombre for p in parents.get_all(offset=3, limit=-1)] == ["d", "e"]
    assert len(parents.get_all(limit=0)) == 5


def test_fields_are_trimmed(parents):
    parents.add(Parent(nombre="x", activo=True))
    assert parents.get_all(fields=["Nombre", "activo"]) == [{"Nombre": "x", "activo": True}]


def test_unknown_names_raise(parents):
    with pytest.raises(QueryError):
        parents.get_all(query={"missing": "1"})
    with pytest.raises(QueryError):
        parents.get_all(fields=["missing"])
    with pytest.raises(QueryError):
        parents.get_all(sortby=["nombre"], order=["sideways"])


def test_transaction_rolls_back(db, parents):
    with pytest.raises(RuntimeError):
        with db.transaction():
            parents.add(Parent(nombre="temp"))
            raise RuntimeError("boom")
    assert parents.get_all() == []


def test_nested_transaction_keeps_outer_work(db, parents):
    with db.transaction():
        parents.add(Parent(nombre="kept"))
        with pytest.raises(RuntimeError):
            with db.transaction():
                parents.add(Parent(nombre="dropped"))
                raise RuntimeError("boom")
    assert [p.nombre for p in parents.get_all()] == ["kept"]


def test_close_disables_access():
    database = Database()
    database.create_tables(Parent)
    repo = Repository(database, Parent)
    database.close()
    with pytest.raises(sqlite3.ProgrammingError):
        repo.get(1)