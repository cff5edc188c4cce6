"""WSGI entry point for the game catalog API."""

from config import PORT
from web.app_factory import create_app

app = create_app()


if __name__ == '__main__':
    app.run(port=PORT, threaded=True)
