"""
Views for the Users app.
"""
import logging

from django.contrib.auth import get_user_model
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from apps.users.serializers import UserRegistrationSerializer, UserSerializer

logger = logging.getLogger(__name__)
User = get_user_model()


def _build_auth_response(user, refresh_token, http_status=status.HTTP_200_OK):
    return Response(
        {
            'success': True,
            'user': UserSerializer(user).data,
            'accessToken': str(refresh_token.access_token),
            'refreshToken': str(refresh_token),
        },
        status=http_status,
    )


class RegisterView(APIView):
    """
    Register a new account.

    POST /api/v1/auth/register/
    """
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = UserRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info('New user registered: %s (id=%s)', user.email, user.id)
        return _build_auth_response(user, RefreshToken.for_user(user), status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    Exchange email and password for JWT tokens.

    POST /api/v1/auth/login/
    """
    permission_classes = [AllowAny]

    def post(self, request):
        email = (request.data.get('email') or '').lower()
        password = request.data.get('password')

        if not email or not password:
            return Response(
                {
                    'success': False,
                    'error': {
                        'code': 'validation_error',
                        'message': 'Both email and password are required.',
                    },
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        user = User.objects.filter(email=email).first()
        if user is None or not user.check_password(password) or not user.is_active:
            return Response(
                {
                    'success': False,
                    'error': {
                        'code': 'authentication_failed',
                        'message': 'Invalid email or password.',
                    },
                },
                status=status.HTTP_401_UNAUTHORIZED,
            )

        return _build_auth_response(user, RefreshToken.for_user(user))


class UserProfileView(generics.RetrieveAPIView):
    """
    GET /api/v1/users/me/
    """
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated]

    def retrieve(self, request, *args, **kwargs):
        return Response({'success': True, 'data': UserSerializer(request.user).data})
