"""Account API views (registration and ``/account/me``).

Domain exceptions are caught and translated into HTTP status codes.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from modules.accounts.dtos import RegisterAccountDTO, UpdateAddressDTO
from modules.accounts.exceptions import AccountAlreadyExists
from modules.accounts.repositories.django_repository import AccountDjangoRepository
from modules.accounts.serializers import AccountSerializer
from modules.accounts.services import AccountService
from modules.delivery import services as delivery_services
from modules.delivery.exceptions import OutOfServiceArea


def _first_error(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid payload."
    message = errors[0].get("msg", "Invalid payload.")
    return message.removeprefix("Value error, ")


def _build_service() -> AccountService:
    return AccountService(
        repository=AccountDjangoRepository(),
        delivery_area=delivery_services.get_delivery_area_service(),
    )


class RegisterView(APIView):
    """POST /api/v1/auth/register/"""

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_scope = "registration"

    def post(self, request: Request) -> Response:
        data = request.data
        try:
            dto = RegisterAccountDTO(
                name=data.get("name", ""),
                email=data.get("email", ""),
                password=data.get("password", ""),
                postcode=data.get("postcode", ""),
            )
        except PydanticValidationError as exc:
            return Response(
                {"detail": _first_error(exc), "code": "invalid_payload"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            account = _build_service().register(dto)
        except AccountAlreadyExists as exc:
            return Response(
                {"detail": str(exc), "code": "account_exists"},
                status=status.HTTP_409_CONFLICT,
            )
        except OutOfServiceArea as exc:
            return Response(
                {"detail": str(exc), "code": exc.code},
                status=status.HTTP_403_FORBIDDEN,
            )

        refresh = RefreshToken.for_user(account.user)
        body = dict(AccountSerializer(account).data)
        body["tokens"] = {"refresh": str(refresh), "access": str(refresh.access_token)}
        return Response(body, status=status.HTTP_201_CREATED)


class AccountMeView(APIView):
    """GET / PUT / PATCH /api/v1/account/me/"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        account = _build_service().get_account(request.user)
        return Response(AccountSerializer(account).data)

    def put(self, request: Request) -> Response:
        data = request.data if isinstance(request.data, dict) else {}
        try:
            dto = UpdateAddressDTO(
                **{k: data[k] for k in UpdateAddressDTO.model_fields if k in data}
            )
        except PydanticValidationError as exc:
            return Response(
                {"detail": _first_error(exc), "code": "invalid_payload"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        account = _build_service().update_address(request.user, dto)
        return Response(AccountSerializer(account).data)

    def patch(self, request: Request) -> Response:
        return self.put(request)
