# renormalizer/cli/__init__.py
