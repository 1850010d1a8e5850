from django.contrib.auth.hashers import make_password
from rest_framework import serializers

from rides.models import Role, User
from services import get_services
from storage import DuplicateUsernameError


class UserSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    username = serializers.CharField(read_only=True)
    role = serializers.CharField(read_only=True)


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)


class RefreshSerializer(serializers.Serializer):
    refresh = serializers.CharField()


class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(write_only=True, min_length=6)
    role = serializers.ChoiceField(choices=Role.CHOICES)

    def validate_username(self, value):
        if get_services().users.find_by_username(value) is not None:
            raise serializers.ValidationError("Username already exists")
        return value

    def create(self, validated_data):
        try:
            return get_services().users.create(User(
                id=None,
                username=validated_data['username'],
                password=make_password(validated_data['password']),
                role=validated_data['role'],
            ))
        except DuplicateUsernameError:
            # Lost a race with a concurrent registration
            raise serializers.ValidationError({'username': 'Username already exists'})
