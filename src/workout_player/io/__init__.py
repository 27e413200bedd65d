"""Persistence and transport: serializers, local store, API client, settings."""
