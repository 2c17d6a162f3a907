from flask import Blueprint, request, jsonify, g
from sqlalchemy.exc import SQLAlchemyError
from extensions import db
from models import RealEstate
from utils.auth_utils import jwt_required
from utils.connection import get_shared_user_ids
from utils.errors import AppError, NotFound, ValidationError
from utils.etag import conditional_list_response, conditional_detail_response
from utils.logger import get_logger
from utils.request_utils import parse_int_arg

real_estate_bp = Blueprint('real_estate', __name__, url_prefix='/api/real-estate')
logger = get_logger('real_estate')

MAX_IMAGES = 5


def visible_listings(user_ids=None):
    if user_ids is None:
        user_ids = get_shared_user_ids(g.current_user_id)
    return RealEstate.query.filter(
        RealEstate.user_id.in_(user_ids),
        RealEstate.is_deleted == False  # noqa: E712
    )


def clean_images(images):
    if not isinstance(images, list):
        return []
    return [img.strip() for img in images if isinstance(img, str) and img.strip()][:MAX_IMAGES]


def apply_fields(listing, data):
    for key in ('category', 'region'):
        if key in data:
            setattr(listing, key, data[key])
    for key in ('rooms', 'bathrooms', 'price'):
        if key in data:
            setattr(listing, key, int(data[key] or 0))
    if 'preference' in data:
        listing.preference = int(data['preference']) if data['preference'] is not None else 1
    if 'images' in data:
        listing.images = clean_images(data['images'])
    if 'url' in data:
        listing.url = data['url'] or None
    if 'note' in data:
        listing.note = data['note'] or None


@real_estate_bp.route('', methods=['GET'])
@jwt_required
def list_listings():
    category = request.args.get('category')
    region = request.args.get('region')

    try:
        min_value = parse_int_arg('minPrice')
        max_value = parse_int_arg('maxPrice')
    except AppError as e:
        return e.to_response()

    owners = sorted(get_shared_user_ids(g.current_user_id))
    query = visible_listings(owners)
    if category:
        query = query.filter(RealEstate.category == category)
    if region:
        query = query.filter(RealEstate.region.contains(region))
    if min_value is not None:
        query = query.filter(RealEstate.price >= min_value)
    if max_value is not None:
        query = query.filter(RealEstate.price <= max_value)

    filters = {'owners': owners, 'category': category, 'region': region,
               'minPrice': min_value, 'maxPrice': max_value}

    def build_payload(rows, _total):
        return {'items': [r.to_dict() for r in rows], 'count': len(rows)}

    return conditional_list_response(
        query, RealEstate, filters, build_payload,
        order_by=(RealEstate.created_at.desc(),),
    )


@real_estate_bp.route('', methods=['POST'])
@jwt_required
def create_listing():
    data = request.get_json(silent=True) or {}

    if not data.get('category') or not data.get('region'):
        return ValidationError('category and region are required').to_response()

    listing = RealEstate(user_id=g.current_user_id, images=[])
    try:
        apply_fields(listing, data)
    except (TypeError, ValueError):
        return ValidationError('rooms, bathrooms, price and preference must be integers').to_response()

    try:
        db.session.add(listing)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Real estate create error')
        return jsonify({'success': False, 'message': 'Failed to create listing'}), 500

    logger.info(f"Real estate item created: {listing.id}")
    return jsonify(listing.to_dict()), 201


@real_estate_bp.route('/<string:listing_id>', methods=['GET'])
@jwt_required
def get_listing(listing_id):
    try:
        return conditional_detail_response(
            visible_listings().filter(RealEstate.id == listing_id), RealEstate, lambda r: r.to_dict()
        )
    except AppError as e:
        return e.to_response()


@real_estate_bp.route('/<string:listing_id>', methods=['PUT'])
@jwt_required
def update_listing(listing_id):
    data = request.get_json(silent=True) or {}

    listing = visible_listings().filter(RealEstate.id == listing_id).first()
    if not listing:
        return NotFound('Item not found').to_response()

    try:
        apply_fields(listing, data)
    except (TypeError, ValueError):
        return ValidationError('rooms, bathrooms, price and preference must be integers').to_response()

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception('Real estate update error')
        return jsonify({'success': False, 'message': 'Failed to update listing'}), 500

    logger.info(f"Real estate item updated: {listing.id}")
    return jsonify(listing.to_dict())


@real_estate_bp.route('/<string:listing_id>', methods=['DELETE'])
@jwt_required
def delete_listing(listing_id):
    listing = visible_listings().filter(RealEstate.id == listing_id).first()
    if not listing:
        return NotFound('Item not found').to_response()

    listing.is_deleted = True
    db.session.commit()

    logger.info(f"Real estate item deleted: {listing_id}")
    return jsonify({'success': True, 'message': 'Item deleted'})
