from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_jwt_extended import JWTManager
import pymysql

from .functions import utc_now

pymysql.install_as_MySQLdb()

db = SQLAlchemy()
bcrypt = Bcrypt()
jwt = JWTManager()

class BaseModel(db.Model):
    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    def delete(self):
        db.session.delete(self)
        db.session.commit()
