from extensions import db
from .schedule_models import SharedRecordMixin, _iso


class RealEstate(SharedRecordMixin, db.Model):
    __tablename__ = 'real_estates'

    category = db.Column(db.String(32), nullable=False, index=True)  # 매매 / 전세 / 월세
    region = db.Column(db.String(128), nullable=False)
    rooms = db.Column(db.Integer, default=0, nullable=False)
    bathrooms = db.Column(db.Integer, default=0, nullable=False)
    price = db.Column(db.BigInteger, default=0, nullable=False)
    preference = db.Column(db.Integer, default=1, nullable=False)
    images = db.Column(db.JSON, default=list)  # 图片地址，最多 5 张
    url = db.Column(db.String(512), nullable=True)
    note = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'category': self.category,
            'region': self.region,
            'rooms': self.rooms,
            'bathrooms': self.bathrooms,
            'price': self.price,
            'preference': self.preference,
            'images': self.images or [],
            'url': self.url,
            'note': self.note,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
