"""Blueprint registrations for application routes."""

from flask import Flask

from .catalog import categories_blueprint, coupons_blueprint, extras_blueprint
from .profit_grids import blueprint as profit_grids_blueprint


def register_routes(app: Flask) -> None:
    """Register all Flask blueprints with the provided application."""

    app.register_blueprint(profit_grids_blueprint)
    app.register_blueprint(coupons_blueprint)
    app.register_blueprint(extras_blueprint)
    app.register_blueprint(categories_blueprint)
