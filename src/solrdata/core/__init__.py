"""Query dispatch, execution and result reassembly."""

from solrdata.core.parsers import QueryParser, QueryParsers
from solrdata.core.template import SolrTemplate

__all__ = ["QueryParser", "QueryParsers", "SolrTemplate"]
