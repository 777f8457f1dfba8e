import sqlite3

import pytest

from oikos.catalogs import TipoDependencia
from oikos.database import Database, RecordNotFound, Repository
from oikos.dependencias import Dependencia, DependenciaTipoDependencia
from oikos.padres import (
    DependenciaPadre,
    Tree,
    construir_dependencias_hijas,
    construir_dependencias_padre,
    facultades,
    proyectos_curriculares_por_facultad,
    tr_dependencia_padre,
)


@pytest.fixture
def db():
    database = Database()
    database.create_tables(TipoDependencia, Dependencia, DependenciaTipoDependencia, DependenciaPadre)
    for tipo_id in (1, 2, 3, 14, 15):
        database.connection.execute(
            'INSERT INTO "tipo_dependencia" (id, nombre, activo) VALUES (?, ?, 1)',
            [tipo_id, f"tipo {tipo_id}"],
        )
    yield database
    database.close()


def dep(db, nombre):
    return Repository(db, Dependencia).add(Dependencia(nombre=nombre))


def link(db, padre, hija):
    return Repository(db, DependenciaPadre).add(
        DependenciaPadre(padre_id=Dependencia(id=padre), hija_id=Dependencia(id=hija), activo=True)
    )


def tipo(db, dependencia, tipo_id):
    Repository(db, DependenciaTipoDependencia).add(
        DependenciaTipoDependencia(
            tipo_dependencia_id=TipoDependencia(id=tipo_id),
            dependencia_id=Dependencia(id=dependencia),
            activo=True,
        )
    )


def test_dependencia_padre_round_trip(db):
    padre = dep(db, "Universidad")
    hija = dep(db, "Facultad")
    link_id = link(db, padre, hija)
    stored = Repository(db, DependenciaPadre).get(link_id)
    assert stored.padre_id.id == padre
    assert stored.hija_id.id == hija
    assert stored.activo is True


def test_dependencia_padre_delete(db):
    link_id = link(db, dep(db, "A"), dep(db, "B"))
    repo = Repository(db, DependenciaPadre)
    assert repo.delete(link_id) == 1
    with pytest.raises(RecordNotFound):
        repo.get(link_id)


def test_construir_dependencias_padre_builds_full_trees(db):
    universidad = dep(db, "Universidad")
    facultad = dep(db, "Facultad")
    proyecto = dep(db, "Proyecto")
    suelta = dep(db, "Suelta")
    link(db, universidad, facultad)
    link(db, facultad, proyecto)

    raices = construir_dependencias_padre(db)

    assert [raiz.id for raiz in raices] == [universidad, suelta]
    assert [hija.id for hija in raices[0].opciones] == [facultad]
    assert raices[0].opciones[0].nombre == "Facultad"
    assert [nieta.id for nieta in raices[0].opciones[0].opciones] == [proyecto]
    assert raices[0].opciones[0].opciones[0].opciones == []
    assert raices[1].opciones == []


def test_construir_dependencias_hijas_sets_and_returns(db):
    padre = dep(db, "Padre")
    a = dep(db, "A")
    b = dep(db, "B")
    link(db, padre, b)
    link(db, padre, a)
    nodo = Tree(id=padre, nombre="Padre")
    hijas = construir_dependencias_hijas(db, nodo)
    assert [h.id for h in hijas] == [a, b]
    assert nodo.opciones is hijas


def test_construir_dependencias_hijas_detects_cycles(db):
    a = dep(db, "A")
    b = dep(db, "B")
    link(db, a, b)
    link(db, b, a)
    with pytest.raises(ValueError):
        construir_dependencias_hijas(db, Tree(id=a))


def test_facultades_with_their_projects(db):
    universidad = dep(db, "Universidad")
    facultad = dep(db, "Facultad")
    pregrado = dep(db, "Pregrado")
    posgrado = dep(db, "Posgrado")
    oficina = dep(db, "Oficina")
    for hija in (facultad,):
        link(db, universidad, hija)
    for hija in (pregrado, posgrado, oficina):
        link(db, facultad, hija)
    tipo(db, facultad, 2)
    tipo(db, pregrado, 14)
    tipo(db, posgrado, 15)
    tipo(db, oficina, 3)

    found = facultades(db)

    assert [f.id for f in found] == [facultad]
    assert [p.id for p in found[0].opciones] == [pregrado, posgrado]
    assert all(p.opciones is None for p in found[0].opciones)


def test_facultades_skips_faculties_without_parent(db):
    facultad = dep(db, "Facultad")
    tipo(db, facultad, 2)
    assert facultades(db) == []


def test_proyectos_curriculares_por_facultad_distinct(db):
    facultad = dep(db, "Facultad")
    proyecto = dep(db, "Proyecto")
    link(db, facultad, proyecto)
    tipo(db, proyecto, 1)
    tipo(db, proyecto, 14)
    nodo = Tree(id=facultad, nombre="Facultad")
    proyectos = proyectos_curriculares_por_facultad(db, nodo)
    assert proyectos == [Tree(id=proyecto, nombre="Proyecto")]
    assert nodo.opciones == proyectos


def test_tr_dependencia_padre_stores_child_and_link(db):
    padre = dep(db, "Universidad")
    relacion = DependenciaPadre(padre_id=Dependencia(id=padre), hija_id=Dependencia(nombre="Nueva"))
    hija_id = tr_dependencia_padre(db, relacion)

    hija = Repository(db, Dependencia).get(hija_id)
    assert hija.nombre == "Nueva"
    assert hija.activo is True
    assert hija.fecha_creacion is not None

    stored = Repository(db, DependenciaPadre).get(relacion.id)
    assert stored.padre_id.id == padre
    assert stored.hija_id.id == hija_id
    assert stored.activo is True
    assert stored.fecha_creacion == stored.fecha_modificacion


def test_tr_dependencia_padre_rolls_back_on_missing_parent(db):
    relacion = DependenciaPadre(padre_id=Dependencia(id=999), hija_id=Dependencia(nombre="Nueva"))
    with pytest.raises(sqlite3.IntegrityError):
        tr_dependencia_padre(db, relacion)
    assert Repository(db, Dependencia).get_all() == []
    assert Repository(db, DependenciaPadre).get_all() == []


def test_tr_dependencia_padre_requires_child(db):
    relacion = DependenciaPadre(padre_id=Dependencia(id=dep(db, "Padre")))
    with pytest.raises(ValueError):
        tr_dependencia_padre(db, relacion)