class PortfolioError(Exception):
    """Base class for errors raised by the services."""


class PostNotFound(PortfolioError):
    def __init__(self, post_id: str):
        super().__init__(f"Post {post_id} not found")
        self.post_id = post_id


class ValidationFailure(PortfolioError):
    """Payload is well-formed JSON/multipart but breaks the post shape."""


class UpstreamFailure(PortfolioError):
    """The database, media store or email relay call failed."""


class AuthInvalid(PortfolioError):
    pass


class InvalidCredentials(PortfolioError):
    pass


class RegistrationClosed(PortfolioError):
    pass
