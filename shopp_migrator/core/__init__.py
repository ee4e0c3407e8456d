"""
Migration core: mapping, conversion, verification and the store adapters.
"""
