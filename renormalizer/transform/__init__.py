# renormalizer/transform/__init__.py

from .unwrapper import normalize, unwrap, check_precision, MAX_SAFE_INTEGER
