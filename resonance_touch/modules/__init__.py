"""
Core modules for the Resonance Touch Interface.

This package contains:
- Emotional state classification for touch samples
- Resonance mapper resolving emotional states to interactions
- Personalization store for user profiles and patterns
- Storage backends for profile persistence
- Statistics for latency, accuracy and usage
- Event channel and the orchestrator sequencing the pipeline
- Utility functions for common operations
"""
