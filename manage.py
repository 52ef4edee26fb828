#!/usr/bin/env python3
import click
from flask.cli import FlaskGroup
from app import create_app


# Set up CLI command group; commands are registered by create_app
@click.group(cls=FlaskGroup, create_app=create_app)
def cli():
    """Management script for the SPF inspector"""
    pass


if __name__ == "__main__":
    cli()
