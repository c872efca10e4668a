"""AuthApi - aiohttp JSON API over the auth service.

Service calls block on bcrypt, SQLite, SMTP and certificate fetches, so each
one runs in a worker thread via ``asyncio.to_thread`` and the event loop keeps
serving other requests.
"""

import asyncio
import json
import logging
from typing import Any, Callable, Optional

from aiohttp import web

from . import validation
from .auth.errors import AuthError, InternalError
from .auth.service import AuthService, LoginResult
from .outcome import Outcome

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


class AuthApi:
    """HTTP interface for signup, OTP, login, password reset and Google login.

    Every response body is an ``Outcome`` envelope, except validation
    failures which list each problem under ``errors``.
    """

    def __init__(self, config: dict[str, Any], service: AuthService):
        if service is None:
            raise ValueError("AuthApi requires an AuthService instance")
        self.service = service
        self.host = config.get("host", "0.0.0.0")
        self.port = config.get("port", 8080)
        self.secure_cookies = config.get("secure_cookies", False)
        self.app: Optional[web.Application] = None
        self.runner = None
        self.site = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self.handle_health)
        app.router.add_post("/signup", self.handle_signup)
        app.router.add_post("/login", self.handle_login)
        app.router.add_post("/generate-otp", self.handle_generate_otp)
        app.router.add_post("/verify-otp", self.handle_verify_otp)
        app.router.add_post("/reset-password", self.handle_reset_password)
        app.router.add_post("/google-auth", self.handle_google_auth)
        return app

    async def start(self) -> None:
        """Start aiohttp web server."""
        self.app = self.build_app()
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()
        logger.info(f"AuthApi started on {self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop web server gracefully."""
        if self.site:
            await self.site.stop()
        if self.runner:
            await self.runner.cleanup()
        logger.info("AuthApi stopped")

    @staticmethod
    async def _read_json(request: web.Request) -> Any:
        try:
            return await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None

    @staticmethod
    def _validation_failed(problems: list[str]) -> web.Response:
        return web.json_response(
            {
                "status": "Failed",
                "message": "Validation error",
                "errors": [{"msg": p} for p in problems],
            },
            status=400,
        )

    @staticmethod
    def _respond(outcome: Outcome) -> web.Response:
        return web.json_response(outcome.to_dict(), status=outcome.http_status)

    async def _run(
        self,
        operation: Callable[[], Outcome],
        error_message: str,
    ) -> Outcome:
        """Run a service call off the event loop and map its failures onto the envelope."""
        try:
            return await asyncio.to_thread(operation)
        except InternalError as e:
            logger.error(f"{error_message}: {e.code}", exc_info=True)
            return Outcome.failure(e, error_message)
        except AuthError as e:
            logger.debug(f"{error_message}: {e.code}")
            return Outcome.failure(e, error_message)
        except Exception as e:
            logger.error(f"{error_message}: unexpected {type(e).__name__}", exc_info=True)
            return Outcome.internal(error_message)

    def _set_token_cookies(self, response: web.Response, data: dict[str, Any]) -> None:
        issuer = self.service.tokens
        response.set_cookie(
            ACCESS_COOKIE,
            data["accessToken"],
            max_age=int(issuer.access_ttl.total_seconds()),
            httponly=True,
            secure=self.secure_cookies,
            samesite="Strict",
        )
        response.set_cookie(
            REFRESH_COOKIE,
            data["refreshToken"],
            max_age=int(issuer.refresh_ttl.total_seconds()),
            httponly=True,
            secure=self.secure_cookies,
            samesite="Strict",
        )

    @staticmethod
    def _login_payload(result: LoginResult) -> dict[str, Any]:
        return {**result.account.public(), **result.tokens.to_dict()}

    async def handle_health(self, request):
        return web.json_response({"status": "ok"})

    async def handle_signup(self, request):
        body = await self._read_json(request)
        problems = validation.validate_signup(body)
        if problems:
            return self._validation_failed(problems)

        def signup():
            account = self.service.signup(
                email=body["email"],
                password=body["password"],
                role=body["role"],
                mobile=body.get("mobile"),
                fullname=body.get("fullname"),
            )
            return Outcome.success("User registered successfully.", account, 201)

        return self._respond(await self._run(signup, "User registration failed"))

    async def handle_login(self, request):
        body = await self._read_json(request)
        problems = validation.validate_login(body)
        if problems:
            return self._validation_failed(problems)

        identifier = body.get("email") or body.get("mobile")

        def login():
            result = self.service.login(identifier, body["password"])
            return Outcome.success(
                "User logged in successfully.", self._login_payload(result), 201
            )

        outcome = await self._run(login, "User Login failed")
        response = self._respond(outcome)
        if outcome.ok:
            self._set_token_cookies(response, outcome.data)
        return response

    async def handle_generate_otp(self, request):
        body = await self._read_json(request)
        problems = validation.validate_generate_otp(body)
        if problems:
            return self._validation_failed(problems)

        def generate():
            data = self.service.generate_otp(body["email"], body["otp_type"])
            if data["purpose"] == "password_reset":
                message = "Password reset OTP sent successfully."
            else:
                message = "OTP sent successfully."
            return Outcome.success(message, data)

        return self._respond(await self._run(generate, "OTP not sent due to technical error"))

    async def handle_verify_otp(self, request):
        body = await self._read_json(request)
        problems = validation.validate_verify_otp(body)
        if problems:
            return self._validation_failed(problems)

        def verify():
            data = self.service.verify_otp(
                body["email"], body["otp_number"], body["otp_type"]
            )
            return Outcome.success("OTP verified successfully", data)

        return self._respond(await self._run(verify, "OTP verification failed"))

    async def handle_reset_password(self, request):
        body = await self._read_json(request)
        problems = validation.validate_reset_password(body)
        if problems:
            return self._validation_failed(problems)

        def reset():
            data = self.service.reset_password(body["email"], body["newPassword"])
            return Outcome.success("Password reset successfully", data)

        return self._respond(await self._run(reset, "Password reset failed"))

    async def handle_google_auth(self, request):
        body = await self._read_json(request)
        problems = validation.validate_federated_login(body)
        if problems:
            return self._validation_failed(problems)

        def google_login():
            result = self.service.federated_login(body["tokenId"], body.get("role"))
            if result.is_signup:
                message = "User created successfully"
            else:
                message = "User logged in successfully."
            return Outcome.success(
                message, {"isSignup": result.is_signup, **self._login_payload(result)}
            )

        outcome = await self._run(google_login, "Google login failed")
        response = self._respond(outcome)
        if outcome.ok:
            self._set_token_cookies(response, outcome.data)
        return response
