"""CSV ingestion utilities for dataset-grounded chat.

Responsibilities:
    - Fetching remote CSV files through a CORS relay with httpx
    - Enforcing the raw-text size ceiling
    - Decoding CSV text into records with pandas
    - Classifying fetch and decode failures

The raw text is kept alongside the records so it can be embedded verbatim
in the grounding instruction.
"""

from gemini_chat.parsing.csv_parser import CsvContent, parse_csv, parse_csv_text

__all__ = ["CsvContent", "parse_csv", "parse_csv_text"]
