"""Connectors for the audio retro report: file source, region sheet, wiki sink."""

from .confluence import ConfluenceClient, ConfluenceError, publish_report
from .files import list_folder, read_table_csv
