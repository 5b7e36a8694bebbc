"""
Utility functions
"""
from helpdesk.utils.logger import get_logger, setup_logger
from helpdesk.utils.tracing import trace_scope
from helpdesk.utils.xml_parser import parse_xml_value, parse_xml_array

__all__ = [
    "get_logger",
    "setup_logger",
    "trace_scope",
    "parse_xml_value",
    "parse_xml_array",
]
