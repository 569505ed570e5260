from rest_framework import exceptions
from rest_framework.authentication import TokenAuthentication


def parse_authorization_key(header: str, keywords=("bearer", "token")):
    parts = (header or "").split()
    if len(parts) != 2 or parts[0].lower() not in keywords:
        return None
    return parts[1]


class BearerTokenAuthentication(TokenAuthentication):
    """DRF token credentials sent as ``Authorization: Bearer <key>``.

    The ``Token <key>`` keyword keeps working for scripted clients.
    """

    keyword = "Bearer"
    accepted_keywords = ("bearer", "token")

    def authenticate(self, request):
        parts = request.META.get("HTTP_AUTHORIZATION", "").split()
        if not parts or parts[0].lower() not in self.accepted_keywords:
            return None

        if len(parts) == 1:
            raise exceptions.AuthenticationFailed("Invalid token header. No credentials provided.")
        if len(parts) > 2:
            raise exceptions.AuthenticationFailed(
                "Invalid token header. Token string should not contain spaces."
            )
        return self.authenticate_credentials(parts[1])
