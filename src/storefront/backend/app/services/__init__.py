"""Domain services behind the Flask blueprints."""
