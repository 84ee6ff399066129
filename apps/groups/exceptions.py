"""
Exceptions raised by group membership changes.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class OutstandingBalance(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'outstanding_balance'
    default_detail = 'Settle the outstanding balance before leaving the group.'
