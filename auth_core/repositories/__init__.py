"""레포지토리 패키지 — 데이터베이스 쿼리 계층.

Repository package — Database query layer.
Contains the repository classes that handle pure database operations:
user lookups for the identity collaborator and the refresh token store.
"""
