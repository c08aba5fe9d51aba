# renormalizer/database/__init__.py
