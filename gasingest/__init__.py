"""gasingest - Google Apps Script library discovery and catalog ingestion."""

__version__ = "0.1.0"
