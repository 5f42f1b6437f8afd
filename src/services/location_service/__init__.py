# src/services/location_service/__init__.py
"""
HTTP сервис геолокации специалистов.
"""
