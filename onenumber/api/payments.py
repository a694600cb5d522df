from flask import Blueprint, request, jsonify, current_app
from marshmallow import Schema, fields, validate, pre_load

from onenumber.services import get_payment_service
from onenumber.services.payment_service import PAYMENT_PLAN_AMOUNTS
from onenumber.utils.auth import (
    login_required, authorize_roles, get_current_principal, get_client_ip, get_user_agent
)
from onenumber.utils.validators import validate_request_json

payment_bp = Blueprint('payment', __name__)


class CreatePaymentLinkSchema(Schema):
    plan_type = fields.Str(required=True, validate=validate.OneOf(list(PAYMENT_PLAN_AMOUNTS)))
    description = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=255))

    @pre_load
    def accept_camel_case(self, data, **kwargs):
        if isinstance(data, dict) and 'planType' in data and 'plan_type' not in data:
            data = dict(data)
            data['plan_type'] = data.pop('planType')
        return data


class PaymentSuccessSchema(Schema):
    number_id = fields.Str(required=True)

    @pre_load
    def accept_camel_case(self, data, **kwargs):
        if isinstance(data, dict) and 'numberId' in data and 'number_id' not in data:
            data = dict(data)
            data['number_id'] = data.pop('numberId')
        return data


@payment_bp.route('/create-payment-link', methods=['POST'])
@login_required
@authorize_roles('user')
@validate_request_json(CreatePaymentLinkSchema())
def create_payment_link():
    """Start a gateway checkout for the selected plan"""
    data = request.validated_data
    user = get_current_principal()

    result = get_payment_service().create_payment_link(
        user,
        data['plan_type'],
        current_app.config.get('FRONTEND_URL'),
        description=data['description'],
        client_ip=get_client_ip(),
        user_agent=get_user_agent()
    )

    return jsonify({
        'success': True,
        'message': 'Payment link created successfully',
        'data': result
    }), 201


@payment_bp.route('/verify-payment/<reference>', methods=['GET'])
@login_required
def verify_payment(reference):
    """Verify a transaction with the gateway and record it once"""
    result = get_payment_service().verify_payment(get_current_principal(), reference)

    if not result['created']:
        return jsonify({
            'success': True,
            'message': 'Transaction already verified',
            'data': result['transaction']
        }), 200

    return jsonify({
        'success': True,
        'message': 'Payment verified and recorded successfully',
        'data': result['transaction']
    }), 201


@payment_bp.route('/success/<reference>', methods=['POST'])
@login_required
@authorize_roles('user')
@validate_request_json(PaymentSuccessSchema())
def payment_success(reference):
    """Convert a completed payment into an active subscription"""
    result = get_payment_service().complete_payment(
        get_current_principal(),
        reference,
        request.validated_data['number_id']
    )

    return jsonify({
        'success': True,
        'message': 'Payment completed and subscription created successfully',
        'data': result
    }), 200


@payment_bp.route('/cancel/<reference>', methods=['POST'])
@login_required
def cancel_payment(reference):
    payment_link = get_payment_service().cancel_payment(get_current_principal(), reference)

    return jsonify({
        'success': True,
        'message': 'Payment cancelled successfully',
        'data': {
            'reference_id': payment_link.reference_id,
            'status': payment_link.status
        }
    }), 200
