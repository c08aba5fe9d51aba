# renormalizer/pipeline/__init__.py
