from ..api import response


def handler(request, settings):
    payload = {
        "status": "ok",
        "version": settings.version,
        "env": settings.env,
        "region": settings.region,
    }
    return response(200, payload)
