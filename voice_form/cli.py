#!/usr/bin/env python3
"""
Interface CLI : voice-to-form et détection d'anomalies sur fichiers locaux
"""

import asyncio
import base64
import json
import mimetypes
from pathlib import Path

import click
import httpx

from .anomaly import detect_anomaly
from .api_keys import resolve_keys
from .config import configure_logging, get_settings
from .demos import DEFAULT_DEMO_ID, DEMOS, get_demo
from .pipeline import voice_to_form


def _banner(title: str) -> None:
    click.echo("=" * 70)
    click.echo(f"  {title}")
    click.echo("=" * 70)


@click.group()
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING...")
def main(log_level):
    """🎙️ Voice to Form"""
    configure_logging(log_level or get_settings().log_level)


@main.command()
def demos():
    """Liste les formulaires disponibles"""
    _banner("FORMULAIRES")
    for demo in DEMOS:
        click.echo(f"\n{demo.icon}  {demo.id} - {demo.form_title}")
        for field in demo.fields:
            click.echo(f"    • {field.name:<24} {field.label}")


async def _fill(audio_path: Path, provider: str, demo_id: str):
    settings = get_settings()
    content_type = mimetypes.guess_type(audio_path.name)[0] or "audio/webm"
    # mimetypes classe .webm en vidéo
    if content_type == "video/webm":
        content_type = "audio/webm"
    async with httpx.AsyncClient(timeout=settings.http_timeout_s) as client:
        return await voice_to_form(
            audio_path.read_bytes(),
            keys=resolve_keys(None, settings),
            settings=settings,
            stt_provider=provider,
            demo_id=demo_id,
            filename=audio_path.name,
            content_type=content_type,
            client=client,
        )


@main.command()
@click.argument("audio", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--provider", type=click.Choice(["elevenlabs", "deepgram", "gemini"]), default="gemini", show_default=True)
@click.option("--demo", "demo_id", type=click.Choice([d.id for d in DEMOS]), default=DEFAULT_DEMO_ID, show_default=True)
def fill(audio, provider, demo_id):
    """Transcrit AUDIO et remplit le formulaire"""
    _banner(f"VOICE TO FORM ({provider} -> {demo_id})")
    result = asyncio.run(_fill(audio, provider, demo_id))

    if result.transcript:
        click.echo(f"\n📝 Transcription : {result.transcript}\n")
    # Formulaire complet : champs non dictés laissés vides
    form = {**get_demo(demo_id).default_values(), **result.data}
    click.echo(json.dumps(form, ensure_ascii=False, indent=2))

    if result.error:
        click.echo(f"\n❌ {result.error}", err=True)
        raise SystemExit(1)


def _image_argument(image: str) -> str:
    """Fichier local -> data URI ; une URL est passée telle quelle"""
    if image.startswith(("http://", "https://", "data:")):
        return image
    path = Path(image)
    if not path.is_file():
        raise click.BadParameter(f"{image} is neither a URL nor a file", param_hint="IMAGE")
    mime = mimetypes.guess_type(path.name)[0] or "image/png"
    return f"data:{mime};base64,{base64.b64encode(path.read_bytes()).decode('ascii')}"


@main.command()
@click.argument("image")
@click.option("--prompt", default="anomaly", show_default=True)
def detect(image, prompt):
    """Détecte les anomalies sur IMAGE (fichier ou URL)"""
    settings = get_settings()
    _banner("DÉTECTION D'ANOMALIES")
    result = asyncio.run(detect_anomaly(
        _image_argument(image),
        prompt,
        fal_key=resolve_keys(None, settings)["fal"],
        timeout_s=settings.detection_timeout_s,
    ))

    if result.error:
        click.echo(f"❌ {result.error}", err=True)
        raise SystemExit(1)
    click.echo(result.summary)


if __name__ == "__main__":
    main()
