import json

from mediqueue.extensions import db
from .base import TimestampMixin, _iso


class ClinicSetting(db.Model, TimestampMixin):
    __tablename__ = 'clinic_settings'

    id = db.Column(db.Integer, primary_key=True)
    setting_key = db.Column(db.String(64), unique=True, nullable=False, index=True)
    setting_value_json = db.Column(db.Text)
    setting_type = db.Column(db.String(32), default='general')
    description = db.Column(db.Text)

    @property
    def setting_value(self):
        if self.setting_value_json is None:
            return None
        try:
            return json.loads(self.setting_value_json)
        except (TypeError, json.JSONDecodeError):
            return self.setting_value_json

    @setting_value.setter
    def setting_value(self, value):
        self.setting_value_json = json.dumps(value)

    def to_dict(self):
        return {
            'id': self.id,
            'setting_key': self.setting_key,
            'setting_value': self.setting_value,
            'setting_type': self.setting_type,
            'description': self.description,
            'updated_at': _iso(self.updated_at),
        }
