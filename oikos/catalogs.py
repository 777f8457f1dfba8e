"""Catalogue records: kinds of use, of dependency, of physical space, and fields."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar


@dataclass
class _Catalogo:
    table_name: ClassVar[str]

    id: int = 0
    nombre: str = ""
    descripcion: str = ""
    codigo_abreviacion: str = ""
    activo: bool = False
    fecha_creacion: datetime | None = None
    fecha_modificacion: datetime | None = None


@dataclass
class TipoUso(_Catalogo):
    """A kind of use a physical space can be given."""

    table_name: ClassVar[str] = "tipo_uso"


@dataclass
class TipoDependencia(_Catalogo):
    """A kind of dependency, such as a faculty or a curricular project."""

    table_name: ClassVar[str] = "tipo_dependencia"


@dataclass
class TipoEspacioFisico(_Catalogo):
    """A kind of physical space."""

    table_name: ClassVar[str] = "tipo_espacio_fisico"


@dataclass
class Campo(_Catalogo):
    """A named attribute that can be recorded for a physical space."""

    table_name: ClassVar[str] = "campo"