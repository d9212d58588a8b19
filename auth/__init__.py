"""auth/ -- Authentication and authorization package for AuthGate.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/.
api/ and main.py import from auth/, not the other way around.
"""
