"""Report rendering."""

from .renderer import OUTPUT_FORMATS, render, render_human, render_table, report_from_dict, report_to_dict

__all__ = ["OUTPUT_FORMATS", "render", "render_human", "render_table", "report_from_dict", "report_to_dict"]
