"""Routing: route descriptors, the per-method route table, prefix scopes.

Routes are registered at application-definition time and never mutated
afterwards. Matching walks each method's routes in insertion order so the
dispatcher can fall through to the next candidate on ``pass``.
"""
