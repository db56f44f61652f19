"""
Tidewatch application layer: configuration, storage and orchestration.
"""
