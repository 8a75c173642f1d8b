"""Contact sheet rendering."""

from rawsheet.render.contact_sheet import ContactSheetRenderer, describe, placeholder_text

__all__ = ["ContactSheetRenderer", "describe", "placeholder_text"]
