from starlette.datastructures import Headers
from starlette.exceptions import HTTPException
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

TOO_LARGE = "Request Entity Too Large"


class RequestBodyTooLarge(HTTPException):
    """Тело запроса превысило допустимый размер"""

    def __init__(self):
        super().__init__(status_code=413, detail=TOO_LARGE)


def body_too_large_response() -> PlainTextResponse:
    return PlainTextResponse(TOO_LARGE, status_code=413)


class BodyLimitMiddleware:
    """Ограничение размера тела запроса.

    Заявленный Content-Length проверяется до вызова приложения. Тело без
    длины (chunked) считается по мере чтения: как только получено больше
    ``max_body_size`` байт, чтение прерывается ``RequestBodyTooLarge``.
    """

    def __init__(self, app: ASGIApp, max_body_size: int):
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_body_size:
            await body_too_large_response()(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    raise RequestBodyTooLarge()
            return message

        await self.app(scope, limited_receive, send)
