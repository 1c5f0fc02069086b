"""
API package for the Resonance Touch Interface.

This package contains:
- FastAPI application factory
- API routes for samples, status, statistics, configuration and profiles
- WebSocket connection management for real-time events
"""
