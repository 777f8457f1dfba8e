from datetime import datetime

import pytest

from oikos.catalogs import Campo, TipoDependencia, TipoEspacioFisico, TipoUso
from oikos.database import Database, RecordNotFound, Repository

MODELS = [TipoUso, TipoDependencia, TipoEspacioFisico, Campo]


@pytest.fixture
def db():
    database = Database()
    database.create_tables(*MODELS)
    yield database
    database.close()


@pytest.mark.parametrize(
    "model, table",
    [
        (TipoUso, "tipo_uso"),
        (TipoDependencia, "tipo_dependencia"),
        (TipoEspacioFisico, "tipo_espacio_fisico"),
        (Campo, "campo"),
    ],
)
def test_table_names(db, model, table):
    Repository(db, model).add(model(nombre="x"))
    row = db.connection.execute(f'SELECT nombre FROM "{table}"').fetchone()
    assert row["nombre"] == "x"


@pytest.mark.parametrize("model", MODELS)
def test_round_trip(db, model):
    repo = Repository(db, model)
    stamp = datetime(2022, 5, 21, 8, 55, 29)
    record = model(
        nombre="Nombre",
        descripcion="Descripcion",
        codigo_abreviacion="NB",
        activo=True,
        fecha_creacion=stamp,
        fecha_modificacion=stamp,
    )
    record_id = repo.add(record)
    assert repo.get(record_id) == record


@pytest.mark.parametrize("model", MODELS)
def test_filter_by_abbreviation(db, model):
    repo = Repository(db, model)
    repo.add(model(nombre="uno", codigo_abreviacion="U"))
    repo.add(model(nombre="dos", codigo_abreviacion="D"))
    found = repo.get_all(query={"CodigoAbreviacion": "D"})
    assert [item.nombre for item in found] == ["dos"]


@pytest.mark.parametrize("model", MODELS)
def test_update_and_delete(db, model):
    repo = Repository(db, model)
    record = model(nombre="antes")
    repo.add(record)
    record.activo = True
    repo.update(record)
    assert repo.get(record.id).activo is True
    repo.delete(record.id)
    with pytest.raises(RecordNotFound):
        repo.get(record.id)


def test_models_do_not_compare_equal_across_kinds():
    assert TipoUso(id=1, nombre="a") != Campo(id=1, nombre="a")
    assert TipoUso(id=1, nombre="a") == TipoUso(id=1, nombre="a")


def test_null_text_reads_as_empty(db):
    db.connection.execute(
        'INSERT INTO "campo" (nombre, descripcion, activo) VALUES (?, NULL, 1)', ["area"]
    )
    [campo] = Repository(db, Campo).get_all()
    assert campo.descripcion == ""
    assert campo.nombre == "area"