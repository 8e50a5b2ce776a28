# Utils package
from .errors import APIError, ValidationError, AuthenticationError, AuthorizationError, NotFoundError
from .helpers import allowed_file, save_uploaded_file, format_date, pagination_args
