# renormalizer/core/__init__.py
