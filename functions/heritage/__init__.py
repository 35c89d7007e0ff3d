"""
Backend package for the Khmer heritage content site.

Serves the public gallery (categories and bilingual articles) and the
authenticated admin panel on top of hosted table, auth and object-storage
services.
"""
