# Path: core/__init__.py
# Purpose: Package initializer for core application layer.
# Layer: core.
# Details: Groups feature extraction, vision models, match scoring, batch orchestration, and shared models.
