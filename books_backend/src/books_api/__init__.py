"""
Books Backend package.

CRUD HTTP API for a books inventory. The FastAPI application is built by
``src.books_api.main.create_app``; ``src.books_api.main.app`` is the default
instance served by the ``books-backend`` command.
"""
