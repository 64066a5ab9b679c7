import secrets

from fastapi import Header, HTTPException, Request


async def verify_api_key(request: Request, x_api_key: str = Header(...)) -> None:
    """Compare the X-Api-Key header with API_SERVER_API_KEY in constant time.

    Raises:
        HTTPException: 401 if the key does not match.
    """
    expected_key = request.app.state.helper_config.get_string_val("API_SERVER_API_KEY")
    if not secrets.compare_digest(x_api_key.encode("utf-8"), expected_key.encode("utf-8")):
        request.app.state.helper_config.get_logger().warning(
            "Rejected request to %s: invalid API key.", request.url.path,
        )
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
