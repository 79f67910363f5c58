"""서비스 패키지 — 비즈니스 로직 계층.

Service package — Business logic layer.
Contains the session manager that orchestrates registration, login,
rotation and revocation, and the retention sweeper that purges dead
refresh token records in the background.
"""
