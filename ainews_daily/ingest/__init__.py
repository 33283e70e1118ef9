"""Raw item ingestion."""

from .items import RawItem, load_raw_items, parse_raw_items

__all__ = ["RawItem", "load_raw_items", "parse_raw_items"]
