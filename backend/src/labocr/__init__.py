"""
labocr - Lab report field extraction from OCR text.

Extracts the report date and serum creatinine value from photographed
lab reports and scores extraction quality against ground truth.
"""

__version__ = "0.1.0"
