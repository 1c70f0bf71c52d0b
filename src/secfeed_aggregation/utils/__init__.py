"""Utility helpers shared across modules."""

from secfeed_aggregation.utils.date_utils import format_pub_date, parse_pub_date, pub_timestamp

__all__ = ["format_pub_date", "parse_pub_date", "pub_timestamp"]
