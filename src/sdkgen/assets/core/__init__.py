from .api_error import ApiError
from .caller import Caller, CallParams, StreamParams
from .client_options import ClientOption, ClientOptions, new_request_options
from .multipart import FormPart, file_part, json_part, text_part
from .stream import Stream

__all__ = [
    "ApiError",
    "CallParams",
    "Caller",
    "ClientOption",
    "ClientOptions",
    "FormPart",
    "Stream",
    "StreamParams",
    "file_part",
    "json_part",
    "new_request_options",
    "text_part",
]
