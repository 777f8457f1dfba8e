"""Parent/child links between dependencies and the trees built from them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar

from .database import Database, Repository
from .dependencias import Dependencia, DependenciaTipoDependencia
from .hierarchy import TIPO_FACULTAD, TIPOS_PROYECTO_CURRICULAR


@dataclass
class DependenciaPadre:
    """A link making one dependency the child of another."""

    table_name: ClassVar[str] = "dependencia_padre"

    id: int = 0
    padre_id: Dependencia | None = None
    hija_id: Dependencia | None = None
    activo: bool = False
    fecha_creacion: datetime | None = None
    fecha_modificacion: datetime | None = None


@dataclass
class Tree:
    """A node of a dependency tree; ``opciones`` is None until its children are looked up."""

    id: int = 0
    nombre: str = ""
    opciones: list[Tree] | None = None


MODELS = (DependenciaPadre,)


def _trees(rows: list) -> list[Tree]:
    return [Tree(row["id"], row["nombre"]) for row in rows]


def facultades(db: Database) -> list[Tree]:
    """Every dependency of the faculty kind that hangs from a parent, with its projects."""
    rows = db.connection.execute(
        "SELECT dh.id AS id, dh.nombre AS nombre "
        f'FROM "{Dependencia.table_name}" d '
        f'INNER JOIN "{DependenciaPadre.table_name}" dp ON d.id = dp.padre_id '
        f'INNER JOIN "{Dependencia.table_name}" dh ON dh.id = dp.hija_id '
        f'INNER JOIN "{DependenciaTipoDependencia.table_name}" dtd ON dh.id = dtd.dependencia_id '
        "WHERE dtd.tipo_dependencia_id = ? ORDER BY dh.id, dp.id",
        [TIPO_FACULTAD],
    ).fetchall()
    found = _trees(rows)
    for facultad in found:
        proyectos_curriculares_por_facultad(db, facultad)
    return found


def proyectos_curriculares_por_facultad(db: Database, facultad: Tree) -> list[Tree]:
    """The curricular projects directly under a faculty; also stored in its ``opciones``."""
    marks = ", ".join("?" for _ in TIPOS_PROYECTO_CURRICULAR)
    rows = db.connection.execute(
        "SELECT DISTINCT de.id AS id, de.nombre AS nombre "
        f'FROM "{Dependencia.table_name}" AS de '
        f'LEFT JOIN "{DependenciaPadre.table_name}" AS dep ON de.id = dep.hija_id '
        f'INNER JOIN "{DependenciaTipoDependencia.table_name}" dtd ON dep.hija_id = dtd.dependencia_id '
        f"WHERE dep.padre_id = ? AND dtd.tipo_dependencia_id IN ({marks}) ORDER BY de.id",
        [facultad.id, *TIPOS_PROYECTO_CURRICULAR],
    ).fetchall()
    proyectos = _trees(rows)
    facultad.opciones = proyectos
    return proyectos


def construir_dependencias_padre(db: Database) -> list[Tree]:
    """Every dependency without a parent, each with its whole subtree, ordered by id."""
    rows = db.connection.execute(
        "SELECT de.id AS id, de.nombre AS nombre "
        f'FROM "{Dependencia.table_name}" AS de '
        f'LEFT JOIN "{DependenciaPadre.table_name}" AS dep ON de.id = dep.hija_id '
        "WHERE dep.padre_id IS NULL ORDER BY de.id"
    ).fetchall()
    raices = _trees(rows)
    for raiz in raices:
        construir_dependencias_hijas(db, raiz)
    return raices


def construir_dependencias_hijas(db: Database, padre: Tree) -> list[Tree]:
    """Fill ``padre.opciones`` with its children, recursively, and return them."""
    return _hijas(db, padre, frozenset())


def _hijas(db: Database, padre: Tree, path: frozenset[int]) -> list[Tree]:
    if padre.id in path:
        raise ValueError(f"cycle in hierarchy at id {padre.id}")
    path = path | {padre.id}
    rows = db.connection.execute(
        "SELECT de.id AS id, de.nombre AS nombre "
        f'FROM "{Dependencia.table_name}" AS de '
        f'LEFT JOIN "{DependenciaPadre.table_name}" AS dep ON de.id = dep.hija_id '
        "WHERE dep.padre_id = ? ORDER BY de.id, dep.id",
        [padre.id],
    ).fetchall()
    hijas = _trees(rows)
    padre.opciones = hijas
    for hija in hijas:
        _hijas(db, hija, path)
    return hijas


def tr_dependencia_padre(db: Database, relacion: DependenciaPadre) -> int:
    """Store a new child dependency and its link to the parent in one transaction.

    Both are marked active and stamped with the current time.  Returns the id
    of the new child dependency.
    """
    hija = relacion.hija_id
    if hija is None:
        raise ValueError("the relation carries no child dependency")
    now = datetime.now()
    with db.transaction():
        hija.activo = True
        hija.fecha_creacion = now
        hija.fecha_modificacion = now
        hija_id = Repository(db, Dependencia).add(hija)
        relacion.activo = True
        relacion.fecha_creacion = now
        relacion.fecha_modificacion = now
        Repository(db, DependenciaPadre).add(relacion)
    return hija_id