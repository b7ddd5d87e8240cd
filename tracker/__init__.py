"""tracker/ -- Projects, tasks and comments: domain types, persistence, services.

Layer rule: tracker/ may import from auth/ and core/, never from api/.
"""
