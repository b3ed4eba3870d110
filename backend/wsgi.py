"""WSGI entry point: ``flask --app wsgi run`` from backend/, or any WSGI server."""
from helpdesk import create_app

app = create_app()

if __name__ == '__main__':
    app.run(debug=False)
