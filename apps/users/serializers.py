"""
Serializers for the Users app.

Output uses camelCase field names to match the mobile client.
"""
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    firstName = serializers.CharField(source='first_name', read_only=True)
    lastName = serializers.CharField(source='last_name', read_only=True)
    displayName = serializers.CharField(source='display_name', read_only=True)
    avatarUrl = serializers.URLField(source='avatar', read_only=True, allow_blank=True)

    class Meta:
        model = User
        fields = ['id', 'email', 'firstName', 'lastName', 'displayName', 'phone', 'avatarUrl']
        read_only_fields = fields


class UserRegistrationSerializer(serializers.Serializer):
    """
    Registration payload. The username is derived from the email address.
    """
    firstName = serializers.CharField(max_length=150)
    lastName = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        validators=[validate_password],
        style={'input_type': 'password'},
    )

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError('A user with that email already exists.')
        return value

    def create(self, validated_data):
        email = validated_data['email']
        base_username = email.split('@')[0][:140]
        username = base_username
        suffix = 1
        while User.objects.filter(username=username).exists():
            suffix += 1
            username = f'{base_username}{suffix}'

        return User.objects.create_user(
            username=username,
            email=email,
            password=validated_data['password'],
            first_name=validated_data['firstName'],
            last_name=validated_data.get('lastName', ''),
        )
