from pintintin import db, bcrypt
from flask_login import UserMixin
import json
import time

ROLE_ADMIN = 'admin'
ROLE_USER = 'user'
ROLE_GUEST = 'guest'
ROLES = (ROLE_ADMIN, ROLE_USER, ROLE_GUEST)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    # Only the administrator account carries a password
    password_hash = db.Column(db.String(256), nullable=True)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        if not self.password_hash or not password:
            return False
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class StateRecord(db.Model):
    """One persisted value of the game state, stored as JSON under a fixed key."""
    __tablename__ = 'state_record'
    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.Float, nullable=True)

    def __init__(self, **kwargs):
        super(StateRecord, self).__init__(**kwargs)
        if self.updated_at is None:
            self.updated_at = time.time()

    def load(self):
        return json.loads(self.value) if self.value is not None else None

    def dump(self, data):
        self.value = json.dumps(data)
        self.updated_at = time.time()
