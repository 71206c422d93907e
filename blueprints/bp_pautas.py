import azure.functions as func

bp = func.Blueprint()


@bp.function_name(name="ping")
@bp.route(route="ping", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def ping(req: func.HttpRequest) -> func.HttpResponse:
    return func.HttpResponse("pong", status_code=200)


@bp.function_name(name="import_pauta")
@bp.route(route="pautas/import", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def import_pauta(req: func.HttpRequest) -> func.HttpResponse:
    from cgim.api.import_pauta import handle_import_pauta
    return handle_import_pauta(req)
