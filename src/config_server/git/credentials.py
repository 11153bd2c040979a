"""Transport credentials for repository URIs."""

from urllib.parse import unquote, urlsplit, urlunsplit

from pydantic import BaseModel


class GitCredentials(BaseModel):
    """Effective credentials and the credential-free URI handed to git."""

    uri: str
    username: str | None = None
    password: str | None = None

    class Config:
        frozen = True

    @property
    def has_secret(self) -> bool:
        return bool(self.username or self.password)


def resolve_credentials(
    uri: str,
    username: str | None = None,
    password: str | None = None,
) -> GitCredentials:
    """Combine explicit credentials with credentials embedded in the URI.

    Embedded ``user:password@`` info is stripped from the returned URI so it is
    never written into the working copy's git config. Explicitly configured
    values win field by field; embedded values fill the gaps.
    """
    username = username.strip() if username and username.strip() else None
    password = password.strip() if password and password.strip() else None

    parts = urlsplit(uri)
    if parts.scheme not in ("http", "https") or "@" not in parts.netloc:
        return GitCredentials(uri=uri, username=username, password=password)

    userinfo, _, hostport = parts.netloc.rpartition("@")
    embedded_user, _, embedded_password = userinfo.partition(":")
    bare = urlunsplit((parts.scheme, hostport, parts.path, parts.query, parts.fragment))
    return GitCredentials(
        uri=bare,
        username=username or unquote(embedded_user) or None,
        password=password or unquote(embedded_password) or None,
    )
