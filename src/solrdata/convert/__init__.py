"""Document conversion between domain objects and Solr documents."""

from solrdata.convert.converter import (
    DocumentConverter,
    EntityMetadata,
    PydanticDocumentConverter,
    PydanticEntityMetadata,
)

__all__ = ["DocumentConverter", "EntityMetadata", "PydanticDocumentConverter", "PydanticEntityMetadata"]
