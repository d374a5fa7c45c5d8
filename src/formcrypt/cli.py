"""Command-line interface for formcrypt.

Example:
    >>> # From terminal:
    >>> # formcrypt --version
    >>> # formcrypt keys generate --out-dir ./keys --bits 2048
    >>> # formcrypt keys fingerprint ./keys/public.pem
    >>> # formcrypt encrypt "Hello world!" --password fooBar42
    >>> # formcrypt decrypt "<envelope>" --password fooBar42
    >>> # formcrypt digest "Hello world!" --algo sha256
    >>> # formcrypt form sign page.html --credentials creds.json --ip 10.0.0.5
    >>> # formcrypt form verify post.json --form contact --credentials creds.json --ip 10.0.0.5
"""

import json
from datetime import timedelta
from pathlib import Path
from typing import Annotated, Any, Optional

import typer

from formcrypt import __version__
from formcrypt.config import Settings
from formcrypt.crypto import digest as digests
from formcrypt.crypto import envelope
from formcrypt.crypto.keypair import KeyPair
from formcrypt.crypto.keys import KeyParams, PublicKey
from formcrypt.errors import FormCryptError
from formcrypt.forms import StaticRequestContext, load_signer, nest_fields

app = typer.Typer(help="formcrypt CLI.")

keys_app = typer.Typer(help="RSA key generation and inspection.")
app.add_typer(keys_app, name="keys")

form_app = typer.Typer(help="Form signing and verification.")
app.add_typer(form_app, name="form")

PUBLIC_KEY_FILENAME = "public.pem"
PRIVATE_KEY_FILENAME = "private.pem"


def _version_callback(value: bool) -> None:
    """Print the version and exit when requested."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


VERSION_OPTION = typer.Option(
    False,
    "--version",
    help="Show formcrypt version and exit.",
    callback=_version_callback,
    is_eager=True,
)


@app.callback()
def cli(version: bool = VERSION_OPTION) -> None:
    """formcrypt CLI entrypoint."""


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(1)


def _credentials(path: Optional[Path]) -> Path:
    path = path or Settings.from_env().credentials_path
    if path is None:
        raise typer.BadParameter("--credentials is required (or set FORMCRYPT_CREDENTIALS)")
    return path


@keys_app.command("generate")
def keys_generate(
    out_dir: Annotated[
        Path,
        typer.Option(..., "--out-dir", "-o", help="Directory for public.pem and private.pem."),
    ],
    bits: Annotated[
        Optional[int],
        typer.Option("--bits", help="RSA modulus size (default: FORMCRYPT_KEY_BITS or 4096)."),
    ] = None,
    password: Annotated[
        Optional[str],
        typer.Option("--password", help="Lock the private key with this password."),
    ] = None,
) -> None:
    """Generate an RSA key pair; the private key file gets mode 0600."""
    if out_dir.exists() and not out_dir.is_dir():
        raise typer.BadParameter(f"Output path is not a directory: {out_dir}")
    length = bits or Settings.from_env().key_bits
    try:
        params = KeyParams(length=length)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid key size: {length}") from exc
    out_dir.mkdir(parents=True, exist_ok=True)
    try:
        pair = KeyPair.generate(password, params)
    except FormCryptError as exc:
        raise _fail(exc.message) from exc
    with pair:
        public_ok = pair.public_key.export_to_file(out_dir / PUBLIC_KEY_FILENAME)
        private_ok = pair.private_key.export_to_file(
            out_dir / PRIVATE_KEY_FILENAME, password, params
        )
        if not (public_ok and private_ok):
            raise _fail(f"Could not write keys to {out_dir}")
        typer.echo(f"Keys written to {out_dir}")
        typer.echo(f"Fingerprint: {pair.fingerprint()}")


def _load_public_key(path: Path) -> PublicKey:
    try:
        return PublicKey.import_file(path)
    except FormCryptError as exc:
        raise _fail(exc.message) from exc


@keys_app.command("fingerprint")
def keys_fingerprint(
    public_key: Annotated[Path, typer.Argument(help="Public key or certificate PEM file.")],
) -> None:
    """Print the SHA-256 fingerprint of a public key."""
    with _load_public_key(public_key) as key:
        typer.echo(key.fingerprint())


@keys_app.command("info")
def keys_info(
    public_key: Annotated[Path, typer.Argument(help="Public key or certificate PEM file.")],
) -> None:
    """Show bit size, exponent and fingerprint of a public key as JSON."""
    with _load_public_key(public_key) as key:
        details = key.details()
        info = {
            "type": details["type"],
            "bits": details["bits"],
            "e": details["rsa"]["e"],
            "fingerprint": key.fingerprint(),
        }
    typer.echo(json.dumps(info, indent=2))


@app.command("encrypt")
def encrypt(
    plaintext: Annotated[str, typer.Argument(help="Text to encrypt.")],
    password: Annotated[
        str, typer.Option(..., "--password", "-p", prompt=True, hide_input=True)
    ],
    cipher: Annotated[Optional[str], typer.Option("--cipher", help="Symmetric cipher.")] = None,
    hash_algo: Annotated[
        Optional[str], typer.Option("--hash", help="Hash deriving the key from the password.")
    ] = None,
) -> None:
    """Encrypt text into a self-describing envelope."""
    settings = Settings.from_env()
    result = envelope.encrypt(
        plaintext, password, cipher or settings.cipher, hash_algo or settings.hash_algo
    )
    if not result.ok:
        raise _fail(result.error.message)  # type: ignore[union-attr]
    typer.echo(result.unwrap().decode("ascii"))


@app.command("decrypt")
def decrypt(
    sealed: Annotated[str, typer.Argument(help="Envelope produced by 'formcrypt encrypt'.")],
    password: Annotated[
        str, typer.Option(..., "--password", "-p", prompt=True, hide_input=True)
    ],
) -> None:
    """Decrypt an envelope and print the plaintext."""
    result = envelope.decrypt(sealed, password)
    if not result.ok:
        raise _fail(result.error.message)  # type: ignore[union-attr]
    typer.echo(result.unwrap().decode("utf-8", errors="replace"))


@app.command("digest")
def digest(
    text: Annotated[str, typer.Argument(help="Text to hash.")],
    algo: Annotated[str, typer.Option("--algo", "-a", help="Hash algorithm.")] = "sha256",
) -> None:
    """Print the hex digest of text."""
    try:
        typer.echo(digests.hexdigest(algo, text))
    except FormCryptError as exc:
        raise _fail(exc.message) from exc


@app.command("digest-file")
def digest_file(
    path: Annotated[Path, typer.Argument(help="File to hash.")],
    algo: Annotated[str, typer.Option("--algo", "-a", help="Hash algorithm.")] = "sha256",
) -> None:
    """Print the hex digest of a file's contents."""
    if not path.is_file():
        raise typer.BadParameter(f"File not found: {path}")
    try:
        typer.echo(digests.file_digest(algo, path))
    except FormCryptError as exc:
        raise _fail(exc.message) from exc


CREDENTIALS_OPTION = typer.Option(
    None,
    "--credentials",
    "-c",
    help="Signer credential JSON (default: FORMCRYPT_CREDENTIALS).",
)


@form_app.command("sign")
def form_sign(
    html_file: Annotated[Path, typer.Argument(help="HTML file containing named <form>s.")],
    ip: Annotated[str, typer.Option(..., "--ip", help="Address the form is served to.")],
    credentials: Optional[Path] = CREDENTIALS_OPTION,
    ttl: Annotated[
        Optional[int], typer.Option("--ttl", help="Validity in seconds (default: FORMCRYPT_FORM_TTL).")
    ] = None,
) -> None:
    """Sign every form in an HTML file and print the result."""
    if not html_file.is_file():
        raise typer.BadParameter(f"HTML file not found: {html_file}")
    settings = Settings.from_env()
    try:
        signer = load_signer(_credentials(credentials), group_key=settings.form_group_key)
    except FormCryptError as exc:
        raise _fail(exc.message) from exc
    lifetime = timedelta(seconds=ttl) if ttl is not None else settings.form_ttl
    html = html_file.read_text(encoding="utf-8")
    typer.echo(signer.sign_form_html(html, StaticRequestContext(remote_addr=ip), lifetime))


@form_app.command("verify")
def form_verify(
    fields_file: Annotated[
        Path, typer.Argument(help="JSON object of submitted fields (flat or nested).")
    ],
    form: Annotated[str, typer.Option(..., "--form", "-f", help="Name of the submitted form.")],
    ip: Annotated[str, typer.Option(..., "--ip", help="Address the submission came from.")],
    credentials: Optional[Path] = CREDENTIALS_OPTION,
) -> None:
    """Verify a form submission; exit code 0 when valid, 1 otherwise."""
    if not fields_file.is_file():
        raise typer.BadParameter(f"Fields file not found: {fields_file}")
    try:
        submitted: Any = json.loads(fields_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Invalid JSON in fields file: {exc}") from exc
    if not isinstance(submitted, dict):
        raise typer.BadParameter("Fields file must hold a JSON object")
    settings = Settings.from_env()
    try:
        signer = load_signer(_credentials(credentials), group_key=settings.form_group_key)
    except FormCryptError as exc:
        raise _fail(exc.message) from exc
    fields = nest_fields(submitted).get(form, {})
    if signer.verify(fields, StaticRequestContext(remote_addr=ip)):
        typer.echo("valid")
        return
    typer.echo("invalid")
    raise typer.Exit(1)
