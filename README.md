# oikos

A small library for keeping the records of a university's organisational units
(*dependencias*) and physical spaces (*espacios físicos*) in an SQLite
database, and for walking the hierarchies between them.

It needs nothing beyond the Python standard library (Python 3.10 or later).

## Record types

Every record type is a dataclass with an `id` field and a `table_name`.
A field whose type is another record type is stored as a foreign key to that
record's table.

- `oikos.catalogs`: `TipoUso`, `TipoDependencia`, `TipoEspacioFisico` and
  `Campo`.
- `oikos.espacios`: `EspacioFisico`, the value a space holds for a field
  (`EspacioFisicoCampo`), parent/child links between spaces
  (`EspacioFisicoPadre`) and the uses of a space (`TipoUsoEspacioFisico`).
  `oikos.espacios.MODELS` lists these four.
- `oikos.dependencias`: `Dependencia`, its kinds
  (`DependenciaTipoDependencia`) and the spaces assigned to it
  (`AsignacionEspacioFisicoDependencia`), listed in
  `oikos.dependencias.MODELS`; `ProyectoCurricular` is a plain id/name pair
  returned by queries.
- `oikos.padres`: `DependenciaPadre`, the link making one dependency the child
  of another (`oikos.padres.MODELS`), and `Tree`, a node of a dependency tree.
- `oikos.database.Deleted`: a small body holding the id of a deleted record.

## Storing and reading records

`oikos.database.Database(path)` opens an SQLite file (default `":memory:"`)
with foreign keys switched on. `create_tables(*models)` creates the tables
that do not exist yet; create the tables of referenced record types too.
A `Database` is also a context manager that closes the connection on exit.

`Repository(db, model)` gives the usual operations on one record type:

```python
from oikos.catalogs import TipoUso
from oikos.database import Database, Repository

with Database() as db:
    db.create_tables(TipoUso)
    tipos = Repository(db, TipoUso)

    new_id = tipos.add(TipoUso(nombre="Aula", activo=True))  # sets and returns the id
    tipo = tipos.get(new_id)

    tipo.nombre = "Aula de clase"
    tipos.update(tipo)   # number of rows updated
    tipos.delete(new_id)  # number of rows deleted
```

`get`, `update` and `delete` raise `oikos.database.RecordNotFound` when no
record has that id. `get` fills related records with their id only.

### Listing with filters, sorting and paging

`Repository.get_all(query, fields, sortby, order, offset, limit)` returns the
matching records, with related records filled in to a depth of five.

- `query`: a mapping of field to value. A dotted key such as
  `"tipo_espacio_fisico_id.nombre"` reaches into a related record; a key that
  names a related record compares its id. A key may end in `__` and one of
  `exact`, `iexact`, `contains`, `icontains`, `in`, `gt`, `gte`, `lt`, `lte`,
  `startswith`, `istartswith`, `endswith`, `iendswith` or `isnull`; without
  one the comparison is `exact`. Values are converted to the field's type.
- `fields`: when given, each result is a mapping of just those fields.
- `sortby` and `order`: either one `"asc"`/`"desc"` per sort field, or a
  single order that applies to every sort field. Sort fields may be dotted.
- `offset` and `limit`: paging. A `limit` of 0 means at most 1000 rows; a
  negative limit means no limit.

```python
from oikos.catalogs import TipoEspacioFisico
from oikos.espacios import EspacioFisico

db = Database()
db.create_tables(TipoEspacioFisico, EspacioFisico)
tipo = TipoEspacioFisico(nombre="Edificio")
Repository(db, TipoEspacioFisico).add(tipo)
espacios = Repository(db, EspacioFisico)
espacios.add(EspacioFisico(nombre="Bloque A", tipo_espacio_fisico_id=tipo))

espacios.get_all(
    {"tipo_espacio_fisico_id.nombre": "Edificio"},
    fields=["id", "nombre"],
    sortby=["nombre"],
    order=["asc"],
)
# [{'id': 1, 'nombre': 'Bloque A'}]
```

An unknown field, a bad value, an order that is neither `asc` nor `desc`, a
size mismatch between `sortby` and `order`, or an order with nothing to sort
by raises `oikos.querying.QueryError`. The helpers `sort_fields`,
`filter_key` and `parse_filter` (which returns a `Lookup`) in
`oikos.querying` are usable on their own.

`oikos.dependencias.list_dependencias(db, ...)` takes the same arguments and,
for whole records, also fills each dependency's
`dependencia_tipo_dependencia` list.

`Database.transaction()` is a context manager that commits on success and
rolls back if an exception escapes; nested blocks use savepoints.

## Hierarchies

`oikos.hierarchy` builds trees of `DependenciaPadreHijo` and
`EspacioFisicoPadreHijo` nodes, whose `opciones` hold their children ordered
by id:

- `dependencias_hijas(db, dependencia_id)` and
  `espacios_fisicos_hijos(db, espacio_fisico_id)` return a node with all its
  descendants nested beneath it (an empty node when the id is unknown);
- `dependencias_padres(db, dependencia_id)` and
  `espacios_fisicos_padres(db, espacio_fisico_id)` return the chain from the
  topmost ancestor down to the given record (empty when it is unknown or has
  no parent);
- `proyectos_por_facultades(db)` and
  `proyectos_por_facultad_id(db, facultad_id)` return faculties with their
  curricular projects beneath them.

`build_children(rows, parent_id)` and `build_ancestors(rows, child_id)` do the
same work on rows already in memory. A cycle in the links raises `ValueError`.

`oikos.padres` offers `Tree` views of dependencies: `facultades(db)`,
`proyectos_curriculares_por_facultad(db, facultad)`,
`construir_dependencias_padre(db)` (every dependency without a parent, with
its whole subtree) and `construir_dependencias_hijas(db, padre)`.
`tr_dependencia_padre(db, relacion)` stores a new child dependency and its
link to the parent in one transaction, marks both active, stamps them with the
current time and returns the child's id.

`oikos.dependencias.proyectos_por_facultad(db, facultad, nivel_academico)`
lists the curricular projects of a faculty for `"PREGRADO"`, `"POSGRADO"` or
`"undefined"` (all levels); any other level gives an empty list.
`oikos.espacios.espacios_huerfanos(db, tipo_espacio)` lists the spaces of a
kind that are nobody's child.

## What it does not do

This is a library only. It has no HTTP or REST interface and no command-line
tool; serving these records over the network is left to the application that
uses it. Storage is SQLite through the standard `sqlite3` module; no other
database server is supported.

## Running the tests

```
pip install -e ".[test]"
pytest
```