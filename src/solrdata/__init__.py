"""solrdata — Typed data access over Apache Solr.

Quick start::

    from solrdata import Criteria, SimpleQuery, SolrTemplate
    from solrdata.config.settings import Settings

    with SolrTemplate.from_settings(Settings()) as template:
        page = template.query_for_page(
            SimpleQuery(criteria=Criteria.where("title").is_("dune")),
            Book,
        )
"""

from solrdata.core.cursor import Cursor
from solrdata.core.exceptions import (
    InvalidArgumentError,
    SolrDataError,
    TransportError,
    UncategorizedRemoteError,
    UnsupportedOperationError,
    UnsupportedQueryKindError,
)
from solrdata.core.template import SolrTemplate
from solrdata.models.criteria import Criteria
from solrdata.models.query import (
    FacetQuery,
    GroupQuery,
    HighlightQuery,
    PageRequest,
    QueryKind,
    SimpleQuery,
    StatsQuery,
    TermsQuery,
)

__version__ = "0.1.0"

__all__ = [
    "Criteria",
    "Cursor",
    "FacetQuery",
    "GroupQuery",
    "HighlightQuery",
    "InvalidArgumentError",
    "PageRequest",
    "QueryKind",
    "SimpleQuery",
    "SolrDataError",
    "SolrTemplate",
    "StatsQuery",
    "TermsQuery",
    "TransportError",
    "UncategorizedRemoteError",
    "UnsupportedOperationError",
    "UnsupportedQueryKindError",
]
