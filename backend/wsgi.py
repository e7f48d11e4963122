# Overview: WSGI entry point; exposes the application for servers and the flask CLI.

from app import create_app

app = create_app()
