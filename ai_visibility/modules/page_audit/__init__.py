"""Page Content Auditor module."""

from ai_visibility.modules.page_audit.auditor import PageAuditor, REQUIRED_SCHEMAS
from ai_visibility.modules.page_audit.html_parser import ParsedPage, parse_page

__all__ = ["PageAuditor", "REQUIRED_SCHEMAS", "ParsedPage", "parse_page"]
