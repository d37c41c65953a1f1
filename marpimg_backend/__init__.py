"""Backend utilities for the Marp-to-images service.

Route handlers stay thin; the work happens here:
- upload validation and per-request work areas
- marp-cli invocation
- renaming generated slides and packing them into a ZIP

Every request owns its upload file and output directory and removes both
before it finishes, whatever the outcome.
"""

__version__ = "1.0.0"
