"""
bidschannels - entity-driven grouping of BIDS files into channel tuples.

This package turns the flat file list produced by a BIDS parser into one
record per grouping key (subject, session, run, task by default), ready to be
consumed by downstream processing pipelines.
"""

import logging

__version__ = "0.1.0"

# Silent by default; hosts opt in through logging or setup_logging()
logging.getLogger(__name__).addHandler(logging.NullHandler())
