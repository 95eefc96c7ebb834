"""Journey application for the CarePath backend.

This package contains the models, the checkpoint/queue progression
services, serializers, views and route registrations of the API.
"""
