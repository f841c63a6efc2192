import azure.functions as func

from catalog_api.app import app
from catalog_api.logging_config import logger, tracer

function_app = func.FunctionApp()


@function_app.route(route="{*route}", auth_level=func.AuthLevel.ANONYMOUS)
async def main(req: func.HttpRequest) -> func.HttpResponse:
    """Azure Functions entry-point routed through FastAPI."""
    with tracer.start_as_current_span("process_function_request") as span:
        span.set_attribute("http.method", req.method)
        span.set_attribute("http.url", str(req.url))
        span.set_attribute("http.route", req.route_params.get('route', ''))

        logger.info(
            f"Processing {req.method} request",
            extra={
                "method": req.method,
                "path": str(req.url),
                "route": req.route_params.get('route', '')
            }
        )

        try:
            response = await func.AsgiMiddleware(app).handle_async(req)
            span.set_attribute("http.status_code", response.status_code)
            return response
        except Exception as e:
            span.set_attribute("error", True)
            span.set_attribute("error.type", type(e).__name__)

            logger.error(
                f"Error processing request: {str(e)}",
                extra={"error_type": type(e).__name__},
                exc_info=True
            )
            return func.HttpResponse(
                body="An unexpected internal server error occurred.",
                status_code=500
            )
