from datetime import timezone

from flask import Blueprint, request, jsonify
from marshmallow import Schema, fields, validate

from onenumber.models import SUBSCRIPTION_PLANS, SUBSCRIPTION_STATUSES, PAYMENT_METHODS
from onenumber.services import get_subscription_service
from onenumber.utils.auth import login_required, authorize_roles, get_current_principal
from onenumber.utils.validators import validate_request_json

subscription_bp = Blueprint('subscription', __name__)


# Request Schemas
class CreateSubscriptionSchema(Schema):
    number_id = fields.Str(required=True)
    plan = fields.Str(required=True, validate=validate.OneOf(SUBSCRIPTION_PLANS))
    payment_method = fields.Str(required=True, validate=validate.OneOf(PAYMENT_METHODS))
    payment_reference = fields.Str(required=True, validate=validate.Length(min=1))


class RenewSubscriptionSchema(Schema):
    payment_reference = fields.Str(required=True, validate=validate.Length(min=1))


class AutoRenewSchema(Schema):
    auto_renew = fields.Bool(required=True)


class UpdateSubscriptionSchema(Schema):
    status = fields.Str(load_default=None, validate=validate.OneOf(SUBSCRIPTION_STATUSES))
    plan = fields.Str(load_default=None, validate=validate.OneOf(SUBSCRIPTION_PLANS))
    end_date = fields.NaiveDateTime(load_default=None, timezone=timezone.utc)
    minutes_used = fields.Int(load_default=None, validate=validate.Range(min=0))
    price = fields.Float(load_default=None, validate=validate.Range(min=0))


def _parse_bool_arg(name):
    value = request.args.get(name)
    if value is None:
        return None
    return value.lower() in ('true', '1', 'yes')


# =============================================================================
# USER ROUTES
# =============================================================================

@subscription_bp.route('', methods=['POST'])
@login_required
@authorize_roles('user')
@validate_request_json(CreateSubscriptionSchema())
def create_subscription():
    data = request.validated_data
    subscription = get_subscription_service().create_subscription(
        get_current_principal(),
        data['number_id'],
        data['plan'],
        data['payment_method'],
        data['payment_reference']
    )

    return jsonify({
        'success': True,
        'message': 'Subscription created successfully',
        'data': subscription.to_dict()
    }), 201


@subscription_bp.route('/my-subscriptions', methods=['GET'])
@login_required
@authorize_roles('user')
def get_my_subscriptions():
    subscriptions = get_subscription_service().get_user_subscriptions(get_current_principal().id)

    return jsonify({
        'success': True,
        'count': len(subscriptions),
        'data': [s.to_dict(include_relationships=True) for s in subscriptions]
    }), 200


@subscription_bp.route('/my-subscriptions/<subscription_id>', methods=['GET'])
@login_required
@authorize_roles('user')
def get_my_subscription(subscription_id):
    subscription = get_subscription_service().get_user_subscription(get_current_principal(), subscription_id)
    return jsonify({'success': True, 'data': subscription.to_dict(include_relationships=True)}), 200


@subscription_bp.route('/renew/<subscription_id>', methods=['POST'])
@login_required
@validate_request_json(RenewSubscriptionSchema())
def renew_subscription(subscription_id):
    subscription = get_subscription_service().renew_subscription(
        get_current_principal(),
        subscription_id,
        request.validated_data['payment_reference']
    )

    return jsonify({
        'success': True,
        'message': 'Subscription renewed successfully',
        'data': subscription.to_dict()
    }), 200


@subscription_bp.route('/cancel/<subscription_id>', methods=['POST'])
@login_required
def cancel_subscription(subscription_id):
    subscription = get_subscription_service().cancel_subscription(get_current_principal(), subscription_id)

    return jsonify({
        'success': True,
        'message': 'Subscription cancelled successfully',
        'data': subscription.to_dict()
    }), 200


@subscription_bp.route('/auto-renew/<subscription_id>', methods=['PATCH'])
@login_required
@validate_request_json(AutoRenewSchema())
def toggle_auto_renew(subscription_id):
    auto_renew = request.validated_data['auto_renew']
    subscription = get_subscription_service().toggle_auto_renew(
        get_current_principal(), subscription_id, auto_renew
    )

    return jsonify({
        'success': True,
        'message': f"Auto-renew {'enabled' if subscription.auto_renew else 'disabled'} successfully",
        'data': subscription.to_dict()
    }), 200


# =============================================================================
# ADMIN ROUTES
# =============================================================================

@subscription_bp.route('/get-all', methods=['GET'])
@login_required
@authorize_roles('admin')
def get_all_subscriptions():
    subscriptions = get_subscription_service().get_all_subscriptions(
        status=request.args.get('status'),
        plan=request.args.get('plan'),
        auto_renew=_parse_bool_arg('auto_renew')
    )

    return jsonify({
        'success': True,
        'count': len(subscriptions),
        'data': [s.to_dict(include_relationships=True) for s in subscriptions]
    }), 200


@subscription_bp.route('/<subscription_id>', methods=['GET'])
@login_required
@authorize_roles('admin')
def get_subscription(subscription_id):
    result = get_subscription_service().get_subscription_with_payment(subscription_id)
    return jsonify({'success': True, 'data': result}), 200


@subscription_bp.route('/<subscription_id>', methods=['PATCH'])
@login_required
@authorize_roles('admin')
@validate_request_json(UpdateSubscriptionSchema())
def update_subscription(subscription_id):
    subscription = get_subscription_service().update_subscription(subscription_id, request.validated_data)

    return jsonify({
        'success': True,
        'message': 'Subscription updated successfully',
        'data': subscription.to_dict()
    }), 200


@subscription_bp.route('/<subscription_id>', methods=['DELETE'])
@login_required
@authorize_roles('admin')
def delete_subscription(subscription_id):
    get_subscription_service().delete_subscription(subscription_id)
    return jsonify({'success': True, 'message': 'Subscription deleted successfully'}), 200


@subscription_bp.route('/user/<user_id>', methods=['GET'])
@login_required
@authorize_roles('admin')
def get_subscriptions_for_user(user_id):
    subscriptions = get_subscription_service().get_subscriptions_for_user(user_id)

    return jsonify({
        'success': True,
        'count': len(subscriptions),
        'data': [s.to_dict() for s in subscriptions]
    }), 200
