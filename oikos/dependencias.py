"""Dependencies, their kinds, their physical-space assignments and curricular projects."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Mapping, Sequence

from .catalogs import TipoDependencia
from .database import Database, Repository
from .espacios import EspacioFisico

PARENT_LINK_TABLE = "dependencia_padre"

TIPO_PROYECTO = 1
TIPO_PREGRADO = 14
TIPO_POSGRADO = 15

NIVELES_ACADEMICOS: dict[str, tuple[int, ...]] = {
    "PREGRADO": (TIPO_PREGRADO,),
    "POSGRADO": (TIPO_POSGRADO,),
    "undefined": (TIPO_PROYECTO, TIPO_PREGRADO, TIPO_POSGRADO),
}


@dataclass
class Dependencia:
    """An organisational unit such as a faculty, an office or a curricular project."""

    table_name: ClassVar[str] = "dependencia"

    id: int = 0
    nombre: str = ""
    telefono_dependencia: str = ""
    correo_electronico: str = ""
    activo: bool = False
    fecha_creacion: datetime | None = None
    fecha_modificacion: datetime | None = None
    dependencia_tipo_dependencia: list[DependenciaTipoDependencia] = field(
        default_factory=list, metadata={"persist": False}
    )


@dataclass
class DependenciaTipoDependencia:
    """A kind assigned to a dependency."""

    table_name: ClassVar[str] = "dependencia_tipo_dependencia"

    id: int = 0
    tipo_dependencia_id: TipoDependencia | None = None
    dependencia_id: Dependencia | None = None
    activo: bool = False
    fecha_creacion: datetime | None = None
    fecha_modificacion: datetime | None = None


@dataclass
class AsignacionEspacioFisicoDependencia:
    """A physical space assigned to a dependency over a period."""

    table_name: ClassVar[str] = "asignacion_espacio_fisico_dependencia"

    id: int = 0
    espacio_fisico_id: EspacioFisico | None = None
    dependencia_id: Dependencia | None = None
    activo: bool = False
    fecha_inicio: datetime | None = None
    fecha_fin: datetime | None = None
    documento_soporte: int = 0
    fecha_creacion: datetime | None = None
    fecha_modificacion: datetime | None = None


@dataclass
class ProyectoCurricular:
    """The id and name of a curricular project."""

    id: int
    nombre: str


MODELS = (Dependencia, DependenciaTipoDependencia, AsignacionEspacioFisicoDependencia)


def list_dependencias(
    db: Database,
    query: Mapping[str, Any] | None = None,
    fields: Sequence[str] | None = None,
    sortby: Sequence[str] | None = None,
    order: Sequence[str] | None = None,
    offset: int = 0,
    limit: int = 0,
) -> list[Any]:
    """List dependencies; whole records also carry their kind assignments."""
    records = Repository(db, Dependencia).get_all(query, fields, sortby, order, offset, limit)
    if fields:
        return records
    links = Repository(db, DependenciaTipoDependencia)
    for record in records:
        record.dependencia_tipo_dependencia = links.get_all({"dependencia_id": record.id}, limit=-1)
    return records


def proyectos_por_facultad(db: Database, facultad: int, nivel_academico: str) -> list[ProyectoCurricular]:
    """Child dependencies of a faculty whose kind matches the academic level, by id."""
    tipos = NIVELES_ACADEMICOS.get(nivel_academico)
    if tipos is None:
        return []
    marks = ", ".join("?" for _ in tipos)
    rows = db.connection.execute(
        "SELECT DISTINCT dh.id AS id, dh.nombre AS nombre "
        f'FROM "{Dependencia.table_name}" d '
        f'INNER JOIN "{PARENT_LINK_TABLE}" dp ON d.id = dp.padre_id '
        f'INNER JOIN "{Dependencia.table_name}" dh ON dh.id = dp.hija_id '
        f'INNER JOIN "{DependenciaTipoDependencia.table_name}" dtd ON dh.id = dtd.dependencia_id '
        f"WHERE d.id = ? AND dtd.tipo_dependencia_id IN ({marks}) ORDER BY dh.id",
        [facultad, *tipos],
    ).fetchall()
    return [ProyectoCurricular(row["id"], row["nombre"]) for row in rows]