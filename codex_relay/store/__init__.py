"""Placeholder package for persistence; it holds no modules yet."""