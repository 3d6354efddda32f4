from beta_signup.middleware.request_context import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]
