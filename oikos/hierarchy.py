"""Parent/child trees of dependencies and physical spaces.

Each row of a hierarchy carries the id and name of a record, the id of its
parent (0 when it has none) and the id it has as a child in the link table
(0 when it is nobody's child).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import ClassVar, Iterable, TypeVar, Union

from .database import Database
from .dependencias import (
    PARENT_LINK_TABLE,
    TIPO_POSGRADO,
    TIPO_PREGRADO,
    TIPO_PROYECTO,
    Dependencia,
    DependenciaTipoDependencia,
)
from .espacios import EspacioFisico, EspacioFisicoPadre

TIPO_FACULTAD = 2
TIPOS_PROYECTO_CURRICULAR = (TIPO_PROYECTO, TIPO_PREGRADO, TIPO_POSGRADO)


@dataclass
class DependenciaPadreHijo:
    """A dependency in a tree, with its sub-dependencies in ``opciones``."""

    link_field: ClassVar[str] = "hija"

    id: int = 0
    nombre: str = ""
    padre: int = 0
    hija: int = 0
    opciones: list[DependenciaPadreHijo] = field(default_factory=list)


@dataclass
class EspacioFisicoPadreHijo:
    """A physical space in a tree, with its contained spaces in ``opciones``."""

    link_field: ClassVar[str] = "hijo"

    id: int = 0
    nombre: str = ""
    padre: int = 0
    hijo: int = 0
    opciones: list[EspacioFisicoPadreHijo] = field(default_factory=list)


Node = TypeVar("Node", DependenciaPadreHijo, EspacioFisicoPadreHijo)
AnyNode = Union[DependenciaPadreHijo, EspacioFisicoPadreHijo]


def _link(node: AnyNode) -> int:
    return getattr(node, node.link_field)


def _index(rows: Iterable[Node]) -> dict[int, Node]:
    """Key rows by id; a later row with the same id replaces an earlier one."""
    return {row.id: row for row in rows}


def _plain(node: Node) -> Node:
    return replace(node, opciones=[])


def _children(ordered: list[Node], parent_id: int, path: frozenset[int]) -> list[Node]:
    if parent_id in path:
        raise ValueError(f"cycle in hierarchy at id {parent_id}")
    path = path | {parent_id}
    return [
        replace(
            element,
            opciones=_children(ordered, element.id, path),
            **{element.link_field: 0},
        )
        for element in ordered
        if element.padre == parent_id
    ]


def build_children(rows: Iterable[Node], parent_id: int) -> list[Node]:
    """Every descendant of ``parent_id`` as a tree, children ordered by id."""
    ordered = sorted(_index(rows).values(), key=lambda row: row.id)
    return _children(ordered, parent_id, frozenset())


def build_ancestors(rows: Iterable[Node], child_id: int) -> list[Node]:
    """The chain from the topmost ancestor down to ``child_id`` itself.

    Empty when the record is unknown or is nobody's child.
    """
    index = _index(rows)
    tail = index.get(child_id)
    if tail is None or _link(tail) == 0:
        return []
    by_link = {
        _link(row): row for row in sorted(index.values(), key=lambda row: row.id) if _link(row) != 0
    }
    chain = [_plain(tail)]
    seen = {tail.id}
    current = tail
    while (parent := by_link.get(current.padre)) is not None:
        if parent.id in seen:
            raise ValueError(f"cycle in hierarchy at id {parent.id}")
        seen.add(parent.id)
        chain.insert(0, _plain(parent))
        current = parent
    head = index.get(chain[0].padre)
    chain.insert(0, _plain(head) if head is not None else type(tail)())
    return chain


def _dependencia_rows(db: Database) -> list[DependenciaPadreHijo]:
    rows = db.connection.execute(
        "SELECT de.id AS id, de.nombre AS nombre, dep.padre_id AS padre_id, dep.hija_id AS hija_id "
        f'FROM "{Dependencia.table_name}" de '
        f'LEFT JOIN "{PARENT_LINK_TABLE}" dep ON de.id = dep.hija_id '
        "ORDER BY de.id, dep.id"
    ).fetchall()
    return [
        DependenciaPadreHijo(row["id"], row["nombre"], row["padre_id"] or 0, row["hija_id"] or 0)
        for row in rows
    ]


def _espacio_rows(db: Database) -> list[EspacioFisicoPadreHijo]:
    rows = db.connection.execute(
        "SELECT ef.id AS id, ef.nombre AS nombre, efp.padre_id AS padre_id, efp.hijo_id AS hijo_id "
        f'FROM "{EspacioFisico.table_name}" ef '
        f'LEFT JOIN "{EspacioFisicoPadre.table_name}" efp ON ef.id = efp.hijo_id '
        "ORDER BY ef.id, efp.id"
    ).fetchall()
    return [
        EspacioFisicoPadreHijo(row["id"], row["nombre"], row["padre_id"] or 0, row["hijo_id"] or 0)
        for row in rows
    ]


def _subtree(rows: list[Node], root_id: int, empty: type[Node]) -> Node:
    found = _index(rows).get(root_id)
    head = _plain(found) if found is not None else empty()
    head.opciones = build_children(rows, root_id)
    return head


def dependencias_hijas(db: Database, dependencia_id: int) -> DependenciaPadreHijo:
    """A dependency with all its descendants; an empty node when the id is unknown."""
    return _subtree(_dependencia_rows(db), dependencia_id, DependenciaPadreHijo)


def dependencias_padres(db: Database, dependencia_id: int) -> list[DependenciaPadreHijo]:
    """The chain of dependencies from the topmost ancestor down to the given one."""
    return build_ancestors(_dependencia_rows(db), dependencia_id)


def espacios_fisicos_hijos(db: Database, espacio_fisico_id: int) -> EspacioFisicoPadreHijo:
    """A physical space with all the spaces it contains; an empty node when unknown."""
    return _subtree(_espacio_rows(db), espacio_fisico_id, EspacioFisicoPadreHijo)


def espacios_fisicos_padres(db: Database, espacio_fisico_id: int) -> list[EspacioFisicoPadreHijo]:
    """The chain of physical spaces from the outermost down to the given one."""
    return build_ancestors(_espacio_rows(db), espacio_fisico_id)


def _facultades(db: Database, facultad_id: int | None) -> list[DependenciaPadreHijo]:
    sql = (
        "SELECT d.id AS id, d.nombre AS nombre "
        f'FROM "{Dependencia.table_name}" d '
        f'INNER JOIN "{DependenciaTipoDependencia.table_name}" dp ON d.id = dp.dependencia_id '
        "WHERE dp.tipo_dependencia_id = ?"
    )
    params: list[int] = [TIPO_FACULTAD]
    if facultad_id is not None:
        sql += " AND d.id = ?"
        params.append(facultad_id)
    rows = db.connection.execute(sql + " ORDER BY d.id", params).fetchall()
    return [DependenciaPadreHijo(row["id"], row["nombre"]) for row in rows]


def _proyecto_rows(db: Database) -> list[DependenciaPadreHijo]:
    marks = ", ".join("?" for _ in TIPOS_PROYECTO_CURRICULAR)
    rows = db.connection.execute(
        "SELECT de.id AS id, de.nombre AS nombre, dep.padre_id AS padre_id, dep.hija_id AS hija_id "
        f'FROM "{Dependencia.table_name}" de '
        f'LEFT JOIN "{PARENT_LINK_TABLE}" dep ON de.id = dep.hija_id '
        f'INNER JOIN "{DependenciaTipoDependencia.table_name}" dtd ON dep.hija_id = dtd.dependencia_id '
        f"WHERE dtd.tipo_dependencia_id IN ({marks}) ORDER BY de.id, dep.id",
        list(TIPOS_PROYECTO_CURRICULAR),
    ).fetchall()
    return [
        DependenciaPadreHijo(row["id"], row["nombre"], row["padre_id"] or 0, row["hija_id"] or 0)
        for row in rows
    ]


def _with_proyectos(db: Database, facultades: list[DependenciaPadreHijo]) -> list[DependenciaPadreHijo]:
    if not facultades:
        return facultades
    proyectos = _proyecto_rows(db)
    for facultad in facultades:
        facultad.opciones = build_children(proyectos, facultad.id)
    return facultades


def proyectos_por_facultades(db: Database) -> list[DependenciaPadreHijo]:
    """Every faculty with its curricular projects beneath it."""
    return _with_proyectos(db, _facultades(db, None))


def proyectos_por_facultad_id(db: Database, facultad_id: int) -> list[DependenciaPadreHijo]:
    """The given faculty with its curricular projects; empty when it is not a faculty."""
    return _with_proyectos(db, _facultades(db, facultad_id))