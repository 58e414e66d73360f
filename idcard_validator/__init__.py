"""
ID Card Validator — recognition and validation of identity-document text.

Architecture: Canonicalize → OCR-correct → Extract → Check digits → Result
Fallback:    Barcode/free-text scan → National ID + birth date candidates
"""

__version__ = "1.0.0"
