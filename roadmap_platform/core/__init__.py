"""Cross-cutting types shared by services and blueprints."""
