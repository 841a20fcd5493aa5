from rest_framework import serializers

from livepoll.users.models import User


class UserSerializer(serializers.ModelSerializer[User]):
    firstName = serializers.CharField(  # noqa: N815
        source="first_name",
        required=False,
        allow_blank=True,
        allow_null=True,
        max_length=100,
    )
    lastName = serializers.CharField(  # noqa: N815
        source="last_name",
        required=False,
        allow_blank=True,
        allow_null=True,
        max_length=100,
    )
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)  # noqa: N815

    class Meta:
        model = User
        fields = ["id", "email", "role", "firstName", "lastName", "createdAt"]
        read_only_fields = ["id", "role"]

    def validate_email(self, value: str) -> str:
        qs = User.objects.filter(email__iexact=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            msg = "Email is already in use by another account"
            raise serializers.ValidationError(msg)
        return value

    def _clean_names(self, validated_data):
        for field in ("first_name", "last_name"):
            if field in validated_data:
                validated_data[field] = (validated_data[field] or "").strip()[:100]
        return validated_data

    def update(self, instance, validated_data):
        return super().update(instance, self._clean_names(validated_data))


class AdminUserSerializer(UserSerializer):
    sessionCount = serializers.IntegerField(  # noqa: N815
        source="session_count",
        read_only=True,
        default=0,
    )
    password = serializers.CharField(write_only=True, min_length=6, required=False)

    class Meta(UserSerializer.Meta):
        fields = [*UserSerializer.Meta.fields, "sessionCount", "password"]
        read_only_fields = ["id"]

    def validate(self, attrs):
        if self.instance is None and not attrs.get("password"):
            raise serializers.ValidationError({"password": "This field is required."})
        return attrs

    def create(self, validated_data):
        password = validated_data.pop("password")
        return User.objects.create_user(password=password, **self._clean_names(validated_data))

    def update(self, instance, validated_data):
        validated_data.pop("password", None)
        role = validated_data.get("role")
        if role is not None and role != instance.role:
            instance.invalidate_tokens()
        return super().update(instance, validated_data)


class RegisterSerializer(UserSerializer):
    password = serializers.CharField(write_only=True, min_length=8)

    class Meta(UserSerializer.Meta):
        fields = [*UserSerializer.Meta.fields, "password"]

    def create(self, validated_data):
        password = validated_data.pop("password")
        # Public registration only creates presenters.
        return User.objects.create_user(
            password=password,
            role=User.Role.PRESENTER,
            **self._clean_names(validated_data),
        )


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class ChangePasswordSerializer(serializers.Serializer):
    currentPassword = serializers.CharField(write_only=True)  # noqa: N815
    newPassword = serializers.CharField(write_only=True, min_length=6)  # noqa: N815


class ResetPasswordSerializer(serializers.Serializer):
    newPassword = serializers.CharField(write_only=True, min_length=6)  # noqa: N815
