import json
import sys

import click
from flask import current_app

from spf_inspector.api.validators import is_valid_domain, normalize_domain


def register_commands(app):
    """Register management commands on the app's CLI group"""

    @app.cli.command("validate-spf")
    @click.argument("domain")
    def validate_spf_command(domain):
        """Validate the SPF record of DOMAIN and print the report"""
        if not is_valid_domain(domain):
            raise click.BadParameter("Invalid domain format", param_hint="DOMAIN")

        validator = current_app.extensions['spf_validator']
        report = validator.validate(normalize_domain(domain))
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.is_valid else 1)

    @app.cli.command("purge-rate-limits")
    def purge_rate_limits_command():
        """Purge all rate limiting data"""
        limiter = current_app.extensions['rate_limiter']
        if not limiter.enabled:
            click.echo("Rate limiting is disabled.")
            return
        limiter.reset()
        click.echo("Rate limiting data purged.")
