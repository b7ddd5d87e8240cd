"""auth/ -- Authentication and authorization package for Taskboard.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or tracker/.
api/ and tracker/ import from auth/, not the other way around.
"""
