"""
Email trust checks for MailCheck.

This package implements two pipelines behind a FastAPI app:

- pipeline/classify.py: message inspection (extract, links, scoring)
- pipeline/verify.py: address verification (format, DNS, blocklist, provider)
- main.py: HTTP surface
"""

__version__ = "0.1.0"
