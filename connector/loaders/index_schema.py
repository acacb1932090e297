"""
Schema registered on the glossary connection.

Free text is searchable, enum-like fields are refinable, identifiers are
retrievable and queryable only.
"""

from schemas.index import ConnectionSchema, PropertyType, SchemaProperty


def _text(name: str) -> SchemaProperty:
    return SchemaProperty(
        name=name,
        type=PropertyType.STRING,
        is_searchable=True,
        is_retrievable=True,
        is_queryable=True,
    )


def _refinable(name: str) -> SchemaProperty:
    return SchemaProperty(
        name=name,
        type=PropertyType.STRING,
        is_retrievable=True,
        is_refinable=True,
        is_queryable=True,
    )


GLOSSARY_SCHEMA = ConnectionSchema(
    base_type="microsoft.graph.externalItem",
    properties=[
        _text("termName"),
        _text("definition"),
        _refinable("status"),
        _text("acronym"),
        _refinable("glossaryName"),
        SchemaProperty(name="sourceUrl", type=PropertyType.STRING, is_retrievable=True),
        SchemaProperty(name="sourceId", type=PropertyType.STRING, is_retrievable=True, is_queryable=True),
        SchemaProperty(
            name="lastModifiedTime",
            type=PropertyType.DATETIME,
            is_retrievable=True,
            is_queryable=True,
        ),
    ],
)
