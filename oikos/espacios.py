"""Physical spaces, their recorded fields, their hierarchy and their kinds of use."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar

from .catalogs import Campo, TipoEspacioFisico, TipoUso
from .database import Database, Repository


@dataclass
class EspacioFisico:
    """A physical space such as a campus, a building or a room."""

    table_name: ClassVar[str] = "espacio_fisico"

    id: int = 0
    nombre: str = ""
    descripcion: str = ""
    codigo_abreviacion: str = ""
    activo: bool = False
    tipo_terreno_id: int = 0
    tipo_edificacion_id: int = 0
    tipo_espacio_fisico_id: TipoEspacioFisico | None = None
    fecha_creacion: datetime | None = None
    fecha_modificacion: datetime | None = None


@dataclass
class EspacioFisicoCampo:
    """The value a physical space holds for one catalogue field over a period."""

    table_name: ClassVar[str] = "espacio_fisico_campo"

    id: int = 0
    valor: str = ""
    espacio_fisico_id: EspacioFisico | None = None
    campo_id: Campo | None = None
    activo: bool = False
    fecha_inicio: datetime | None = None
    fecha_fin: datetime | None = None
    fecha_creacion: datetime | None = None
    fecha_modificacion: datetime | None = None


@dataclass
class EspacioFisicoPadre:
    """A parent/child link between two physical spaces."""

    table_name: ClassVar[str] = "espacio_fisico_padre"

    id: int = 0
    padre_id: EspacioFisico | None = None
    hijo_id: EspacioFisico | None = None
    fecha_creacion: datetime | None = None
    fecha_modificacion: datetime | None = None


@dataclass
class TipoUsoEspacioFisico:
    """A kind of use assigned to a physical space."""

    table_name: ClassVar[str] = "tipo_uso_espacio_fisico"

    id: int = 0
    tipo_uso_id: TipoUso | None = None
    espacio_fisico_id: EspacioFisico | None = None
    activo: bool = False
    fecha_creacion: datetime | None = None
    fecha_modificacion: datetime | None = None


MODELS = (EspacioFisico, EspacioFisicoCampo, EspacioFisicoPadre, TipoUsoEspacioFisico)


def espacios_huerfanos(db: Database, tipo_espacio: int) -> list[EspacioFisico]:
    """Spaces of the given kind that are nobody's child, ordered by id."""
    rows = db.connection.execute(
        f'SELECT id FROM "{EspacioFisico.table_name}" '
        "WHERE tipo_espacio_fisico_id = ? AND id NOT IN "
        f'(SELECT DISTINCT hijo_id FROM "{EspacioFisicoPadre.table_name}" '
        "WHERE hijo_id IS NOT NULL) ORDER BY id",
        [tipo_espacio],
    ).fetchall()
    repository = Repository(db, EspacioFisico)
    return [repository.get(row["id"]) for row in rows]