import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///pintintin.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Administrator account (full control plus counter reset and export)
    ADMIN_USERNAME = os.environ.get('ADMIN_USERNAME', 'admin')
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', 'change-me')
    # Display name given to guests who do not type one
    GUEST_DISPLAY_NAME = os.environ.get('GUEST_DISPLAY_NAME', 'Invitado')
    # Base URL used to build shareable game links
    SHARE_BASE_URL = os.environ.get('SHARE_BASE_URL', 'http://localhost:5173')
    # Comma-separated list of front-end origins allowed by CORS and Socket.IO
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000',
        ).split(',') if o.strip()
    ]
