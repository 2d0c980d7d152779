"""JSON response class used for every endpoint."""

from fastapi.responses import JSONResponse


class JSONUtf8Response(JSONResponse):
    """JSON with an explicit ``charset=utf-8`` in the Content-Type header."""

    media_type = "application/json; charset=utf-8"
