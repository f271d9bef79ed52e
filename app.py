# app.py
# Ponto de entrada WSGI (ex: gunicorn app:wsgi_app)
from obras.main import create_app

wsgi_app = create_app()

if __name__ == "__main__":
    wsgi_app.run(debug=True)
