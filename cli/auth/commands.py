import getpass
import re
import typer

from cli.core.session import save_session, load_session, load_token, load_refresh_token, clear_session, is_logged_in
from cli.core.api import api_login, api_logout, api_me, api_refresh


app = typer.Typer(help="Authentication commands (login, refresh, logout, whoami)")

EMPLOYEE_ID_REGEX = re.compile(r"^[A-Za-z0-9_.-]{3,64}$")


@app.command("login")
def login(
    employee_id: str = typer.Option(None, "--employee-id", "-e", help="Employee ID"),
):
    """
    Login to the system. Only allowed if no session is active.
    """
    if is_logged_in():
        typer.echo("Session already active. Logout first to remove the current session.")
        raise typer.Exit(code=1)

    if employee_id is None:
        employee_id = typer.prompt("Employee ID")

    if not EMPLOYEE_ID_REGEX.match(employee_id):
        typer.echo(
            "Invalid employee ID.\n"
            "Use only letters, numbers, '.', '_' or '-', with 3 to 64 characters."
        )
        raise typer.Exit(code=1)

    password = getpass.getpass("Password: ")
    if not password:
        typer.echo("Password cannot be empty.")
        raise typer.Exit(code=1)

    result = api_login(employee_id, password)
    if result is None:
        typer.echo("Login failed (invalid credentials or API error).")
        raise typer.Exit(code=1)

    save_session(result["access_token"], result["refresh_token"], employee_id=employee_id)
    user = result.get("user", {})
    typer.echo(f"Login successful as '{employee_id}' ({user.get('role', 'unknown role')}).")


@app.command("refresh")
def refresh():
    """
    Exchange the stored refresh token for a new token pair.
    """
    refresh_token = load_refresh_token()
    if not refresh_token:
        typer.echo("No active session. Login first.")
        raise typer.Exit(code=1)

    pair = api_refresh(refresh_token)
    if pair is None:
        # The stored token is spent or revoked either way
        clear_session()
        typer.echo("Refresh failed. Session ended, please login again.")
        raise typer.Exit(code=1)

    session = load_session() or {}
    save_session(pair["access_token"], pair["refresh_token"], employee_id=session.get("employee_id"))
    typer.echo("Session refreshed.")


@app.command("logout")
def logout():
    """
    Revoke the refresh token and delete the local session.
    """
    refresh_token = load_refresh_token()
    if refresh_token:
        if api_logout(refresh_token):
            typer.echo("Logged out from backend.")
        else:
            typer.echo("Warning: could not reach the backend. The refresh token stays valid until it expires.")

    clear_session()
    typer.echo("Session ended.")


@app.command("whoami")
def whoami():
    """
    Show the identity carried by the current access token.
    """
    token = load_token()
    if not token:
        typer.echo("No active session.")
        raise typer.Exit(code=1)

    claims = api_me(token)
    if claims is None:
        typer.echo("Access token rejected. Try 'auth refresh'.")
        raise typer.Exit(code=1)

    typer.echo(f"{claims['employee_id']} (worker {claims['sub']}) - {claims['role']}")
