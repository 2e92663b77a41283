"""
Category service and routes.

Tasks point at categories by *name*. Renaming or deleting a category
therefore rewrites or removes the owner's tasks carrying the old name; both
cascades commit together with the category change or not at all.
"""
import logging

from flask import Blueprint, jsonify, request

from auth import acting_user, request_body, resolve_owner
from errors import NotFoundError, ValidationError, api_errors
from model import Category, Task, db

logger = logging.getLogger(__name__)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


def _clean(value):
    return str(value).strip() if value is not None else ""


def _get_owned(category_id, user_id=None):
    category = db.session.get(Category, category_id)
    # Someone else's category is reported exactly like a missing one
    if category is None or (user_id is not None and category.user_id != user_id):
        raise NotFoundError("Category not found")
    return category


def list_categories(user_id):
    if not user_id:
        raise ValidationError("userId is required")
    return (
        Category.query.filter_by(user_id=str(user_id))
        .order_by(Category.created.asc(), Category.id.asc())
        .all()
    )


def create_category(name, user_id):
    name, user_id = _clean(name), _clean(user_id)
    if not name or not user_id:
        raise ValidationError("name and userId are required")
    category = Category(name=name, user_id=user_id)
    db.session.add(category)
    db.session.commit()
    return category


def rename_category(category_id, new_name, user_id=None):
    new_name = _clean(new_name)
    if not new_name:
        raise ValidationError("name is required")
    category = _get_owned(category_id, user_id)

    old_name = category.name
    category.name = new_name
    moved = (
        Task.query.filter_by(user_id=category.user_id, category=old_name)
        .update({Task.category: new_name}, synchronize_session=False)
    )
    db.session.commit()
    logger.info("Renamed category %s %r -> %r (%d tasks)", category.id, old_name, new_name, moved)
    return category


def delete_category(category_id, user_id=None):
    category = _get_owned(category_id, user_id)
    name = category.name
    removed = (
        Task.query.filter_by(user_id=category.user_id, category=name)
        .delete(synchronize_session=False)
    )
    db.session.delete(category)
    db.session.commit()
    logger.info("Deleted category %s %r (%d tasks)", category_id, name, removed)
    return removed


@categories_bp.route("", methods=["GET"])
@api_errors("Failed to fetch categories")
def list_route():
    owner = resolve_owner(request.args.get("userId"))
    return jsonify([c.to_dict() for c in list_categories(owner)])


@categories_bp.route("", methods=["POST"])
@api_errors("Failed to create category")
def create_route():
    body = request_body()
    owner = resolve_owner(body.get("userId"))
    category = create_category(body.get("name"), owner)
    return jsonify(category.to_dict()), 201


@categories_bp.route("/<int:category_id>", methods=["PUT"])
@api_errors("Failed to update category")
def rename_route(category_id):
    body = request_body()
    category = rename_category(category_id, body.get("name"), acting_user())
    return jsonify(category.to_dict())


@categories_bp.route("/<int:category_id>", methods=["DELETE"])
@api_errors("Failed to delete category")
def delete_route(category_id):
    delete_category(category_id, acting_user())
    return jsonify({"message": "Category and tasks deleted"})
