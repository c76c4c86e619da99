from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Browsers call the analysis endpoint from any origin; no credentials are involved.
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """
    Answer every preflight (OPTIONS) immediately with an empty 200 and stamp
    the permissive CORS headers onto all other responses.

    Starlette's CORSMiddleware only reacts to requests that carry an Origin
    header; this one applies the headers unconditionally.
    """
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=dict(CORS_HEADERS))

        response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response
