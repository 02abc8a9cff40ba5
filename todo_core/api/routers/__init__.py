"""
Todo core router modules for handling requests to various endpoints

This module exports the ``routers`` list which includes all known
routers with their endpoints and path operations. The order of the
list defines the order of the endpoints in the OpenAPI documentation.
"""

from . import generic, auth, tasks, tags


routers = [generic.router, auth.router, tasks.router, tags.router]
