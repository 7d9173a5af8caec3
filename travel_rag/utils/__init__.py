"""
Utilities Module
Hotel display formatting and performance metrics
"""

from .hotel_formatting import (
    default_amenities,
    reasonable_rating,
    generate_description,
    convert_price_range,
    placeholder_image,
    format_vector_match,
    format_tripadvisor_hotel,
    hotel_search_text,
)
from .performance import PerformanceMonitor

__all__ = [
    "default_amenities",
    "reasonable_rating",
    "generate_description",
    "convert_price_range",
    "placeholder_image",
    "format_vector_match",
    "format_tripadvisor_hotel",
    "hotel_search_text",
    "PerformanceMonitor",
]
