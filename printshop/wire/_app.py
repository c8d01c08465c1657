"""
HTTP surface — compiles checkout and file operations into a FastAPI app.

    POST   /checkout/sessions                       create from cart
    GET    /checkout/sessions/{id}                  resume
    PATCH  /checkout/sessions/{id}                  partial update
    DELETE /checkout/sessions/{id}                  abandon
    POST   /checkout/sessions/{id}/shipping         shipping quote
    POST   /checkout/sessions/{id}/tax              calculate and store tax
    GET    /checkout/sessions/{id}/validation       pre-submit check
    POST   /checkout/sessions/{id}/payment          pay and place
    POST   /checkout/address/validate               address verdict
    POST   /files/validate                          validate raw upload
    POST   /files/artwork                           store and validate upload

Example:
    gateway = await create_gateway(settings.database_url, REFERENCE_PROCEDURES)
    app = create_app(gateway, settings)
    uvicorn.run(app)
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Header, Request, status
from fastapi.responses import JSONResponse

from printshop.config import Settings
from printshop.gateway import Gateway, GatewayError, GatewayErrorKind
from printshop.checkout import (
    CheckoutError,
    CheckoutServices,
    CheckoutSessionMachine,
    PaymentRequest,
    PersistenceError,
    SessionExpiredError,
    SessionNotFoundError,
    build_order,
    require_payable,
)
from printshop.files import (
    ArtworkRegistry,
    CandidateFile,
    MalwareScanner,
    config_for,
    scan_file,
    validate_file,
)
from printshop.wire._schemas import (
    AddressBody,
    AddressVerdictOut,
    ArtworkOut,
    CreateSessionIn,
    ErrorOut,
    FileValidationOut,
    PaymentIn,
    PaymentOut,
    SessionOut,
    SessionUpdateIn,
    SessionValidationOut,
    ShippingQuoteOut,
    ShippingRequestIn,
)

logger = logging.getLogger(__name__)


def status_for_error(error: Exception) -> int:
    match error:
        case SessionNotFoundError():
            return status.HTTP_404_NOT_FOUND
        case SessionExpiredError():
            return status.HTTP_410_GONE
        case PersistenceError():
            return status.HTTP_503_SERVICE_UNAVAILABLE
        case CheckoutError() | ValueError():
            return status.HTTP_422_UNPROCESSABLE_ENTITY
        case GatewayError(kind=GatewayErrorKind.NOT_FOUND):
            return status.HTTP_404_NOT_FOUND
        case GatewayError(kind=GatewayErrorKind.CONFLICT):
            return status.HTTP_409_CONFLICT
        case GatewayError(kind=GatewayErrorKind.RPC):
            return status.HTTP_502_BAD_GATEWAY
        case _:
            return status.HTTP_503_SERVICE_UNAVAILABLE


def _error_body(error: Exception) -> ErrorOut:
    match error:
        case CheckoutError(code=code, message=message):
            return ErrorOut(code=code, message=message)
        case GatewayError(kind=kind, message=message):
            return ErrorOut(code=f"GATEWAY_{kind.name}", message=message)
        case _:
            return ErrorOut(code="INVALID_REQUEST", message=str(error))


def create_app(
    gateway: Gateway,
    settings: Settings | None = None,
    *,
    services: CheckoutServices | None = None,
    scanner: MalwareScanner | None = None,
) -> FastAPI:
    """
    Build the HTTP app over one gateway.

    One session machine is kept per session id; a request for an id the
    app has not seen resumes it from the gateway. Receipts of placed
    sessions are kept so a repeated payment request is never charged twice.
    """
    settings = settings or Settings()
    machines: dict[str, CheckoutSessionMachine] = {}
    placed: dict[str, PaymentOut] = {}
    artwork = ArtworkRegistry(gateway, bucket=settings.artwork_bucket, scanner=scanner)

    app = FastAPI(title="printshop")
    app.state.settings = settings
    app.state.machines = machines
    app.state.placed = placed

    def new_machine() -> CheckoutSessionMachine:
        return CheckoutSessionMachine.from_settings(gateway, settings, services)

    async def machine_for(session_id: str) -> CheckoutSessionMachine:
        machine = machines.get(session_id)
        if machine is None or machine.session is None:
            machine = new_machine()
            await machine.resume(session_id)
            machines[session_id] = machine
        return machine

    # ─── errors ───────────────────────────────────────────────────────────────

    async def handle_error(request: Request, exc: Exception) -> JSONResponse:
        code = status_for_error(exc)
        if code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=code, content=_error_body(exc).model_dump())

    for exc_type in (CheckoutError, GatewayError, ValueError):
        app.add_exception_handler(exc_type, handle_error)

    # ─── sessions ─────────────────────────────────────────────────────────────

    @app.post("/checkout/sessions", status_code=status.HTTP_201_CREATED)
    async def create_session(req: CreateSessionIn) -> SessionOut:
        machine = new_machine()
        session = await machine.create_session(req.to_domain())
        machines[session.id] = machine
        return SessionOut.from_domain(session)

    @app.get("/checkout/sessions/{session_id}")
    async def get_session(session_id: str) -> SessionOut:
        machine = machines.get(session_id) or new_machine()
        session = await machine.resume(session_id)
        machines[session_id] = machine
        return SessionOut.from_domain(session)

    @app.patch("/checkout/sessions/{session_id}")
    async def update_session(session_id: str, req: SessionUpdateIn) -> SessionOut:
        machine = await machine_for(session_id)
        return SessionOut.from_domain(await machine.update_session(req.to_domain()))

    @app.delete("/checkout/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def clear_session(session_id: str) -> None:
        machine = await machine_for(session_id)
        await machine.clear_session()
        machines.pop(session_id, None)

    @app.post("/checkout/sessions/{session_id}/shipping")
    async def calculate_shipping(session_id: str, req: ShippingRequestIn) -> ShippingQuoteOut:
        machine = await machine_for(session_id)
        quote = await machine.calculate_shipping(req.address.to_domain())
        return ShippingQuoteOut.from_domain(quote)

    @app.post("/checkout/sessions/{session_id}/tax")
    async def apply_tax(session_id: str) -> SessionOut:
        machine = await machine_for(session_id)
        return SessionOut.from_domain(await machine.apply_tax())

    @app.get("/checkout/sessions/{session_id}/validation")
    async def validate_session(session_id: str) -> SessionValidationOut:
        machine = await machine_for(session_id)
        return SessionValidationOut.from_domain(await machine.validate_session())

    @app.post("/checkout/sessions/{session_id}/payment")
    async def process_payment(session_id: str, req: PaymentIn) -> PaymentOut:
        # A retried request for a placed session gets the original answer
        if (receipt := placed.get(session_id)) is not None:
            return receipt

        machine = await machine_for(session_id)
        session = machine.session
        if session is None:
            raise SessionNotFoundError(session_id)
        _, _, payment_method = require_payable(session)

        outcome = await machine.process_payment(
            PaymentRequest(
                session_id=session_id,
                payment_method=payment_method,
                payment_token=req.payment_token,
                save_payment_method=req.save_payment_method,
            )
        )
        if not outcome.success or outcome.reference_number is None:
            return PaymentOut.from_domain((outcome, None))

        final = await machine.complete(outcome.reference_number)
        machines.pop(session_id, None)
        receipt = PaymentOut.from_domain((outcome, build_order(final, outcome.reference_number)))
        placed[session_id] = receipt
        return receipt

    @app.post("/checkout/address/validate")
    async def validate_address(req: AddressBody) -> AddressVerdictOut:
        verdict = await new_machine().validate_address(req.to_domain())
        return AddressVerdictOut.from_domain(verdict)

    # ─── files ────────────────────────────────────────────────────────────────

    async def candidate(request: Request, filename: str, content_type: str | None) -> CandidateFile:
        return CandidateFile(
            name=filename,
            mime_type=(content_type or "").split(";")[0].strip(),
            content=await request.body(),
        )

    @app.post("/files/validate")
    async def validate_upload(
        request: Request,
        x_filename: str = Header(),
        content_type: str | None = Header(default=None),
        product_type: str | None = None,
    ) -> FileValidationOut:
        file = await candidate(request, x_filename, content_type)
        config = config_for(product_type or settings.default_product_type)
        result = validate_file(file, config, scan=await scan_file(scanner, file))
        return FileValidationOut.from_domain(result)

    @app.post("/files/artwork", status_code=status.HTTP_201_CREATED)
    async def submit_artwork(
        request: Request,
        x_filename: str = Header(),
        content_type: str | None = Header(default=None),
        product_type: str | None = None,
    ) -> ArtworkOut:
        file = await candidate(request, x_filename, content_type)
        config = config_for(product_type or settings.default_product_type)
        return ArtworkOut.from_domain(await artwork.submit(file, config))

    return app


__all__ = (
    "status_for_error",
    "create_app",
)
