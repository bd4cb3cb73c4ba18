"""
Domain package - Core types and pure logic with no I/O.

Tagged field values, month resolution, the extraction/evaluation models and
the accuracy metrics live here. Pattern lists and the first-match-wins
extractor live in `labocr.services.ocr.extractor`.
"""
