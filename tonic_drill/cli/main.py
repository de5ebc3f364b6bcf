"""Command-line front end for Tonic Drill."""

import time

import click
import pyfiglet

from ..audio.backend import load_sounddevice
from ..audio.chord_synth import ChordSynthesizer, synthesize_triad, triad_frequencies, write_wav
from ..core.config import ConfigManager
from ..core.errors import MicrophoneUnavailable, NoAudioBackend
from ..core.events import SessionEventType
from ..core.factory import ComponentFactory
from ..logger import get_logger
from ..logging_config import setup_logging
from ..note_types import ConfirmedNote, NoteStatus
from ..note_utils import (
    KEYS,
    NOTE_NAMES,
    frequency_to_pitch_class,
    key_name,
    pitch_class_to_scale_degree_label,
)

logger = get_logger(__name__)

KEY_CHOICES = click.Choice(KEYS + [n for n in NOTE_NAMES if n not in KEYS])
MODE_CHOICES = click.Choice(["major", "minor"])
POLL_SECONDS = 1.0 / 60.0

STATUS_COLORS = {
    NoteStatus.PENDING: "blue",
    NoteStatus.CORRECT: "green",
    NoteStatus.INCORRECT: "red",
}


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Configuration directory (default: ~/.config/tonic_drill)",
)
@click.pass_context
def cli(ctx, debug, config_dir):
    """Tonic Drill - hear the tonic, find the scale degree."""
    setup_logging(level="DEBUG" if debug else "WARNING")
    ctx.obj = {"config_dir": config_dir}


def _config(ctx) -> ConfigManager:
    return ConfigManager(ctx.obj.get("config_dir") if ctx.obj else None)


@cli.command()
@click.option("--key", "-k", type=KEY_CHOICES, default=None, help="Tonal center")
@click.option("--mode", "-m", type=MODE_CHOICES, default=None, help="Scale mode")
@click.option(
    "--interval", "-i", type=click.FloatRange(1.0, 5.0), default=None, help="Seconds per target"
)
@click.option("--volume", "-v", type=click.FloatRange(0.0, 1.0), default=None, help="Chord volume")
@click.option("--mute/--no-mute", default=None, help="Do not play the tonic chord")
@click.option("--duration", "-t", type=float, default=60.0, help="Session length in seconds")
@click.option("--device", type=int, default=None, help="Audio input device ID")
@click.pass_context
def drill(ctx, key, mode, interval, volume, mute, duration, device):
    """Run a live scale-degree session against the microphone."""
    factory = ComponentFactory(_config(ctx))
    detection = factory.create_note_detection_service(
        audio_input=factory.create_audio_input(device_id=device)
    )
    controller = factory.create_session_controller(
        detection_service=detection,
        key=key,
        mode=mode,
        interval=interval,
        volume=volume,
        muted=mute,
    )

    def on_target(degree, expected):
        click.clear()
        click.echo(f"{key_name(controller.key)} {controller.mode.value}")
        click.echo(pyfiglet.figlet_format(str(degree)))

    def on_confirmed(note: ConfirmedNote):
        color = STATUS_COLORS[controller.note_status]
        click.secho(f"  heard {note.pitch_class} ({note.label})", fg=color)

    def on_outcome(degree, outcome):
        logger.debug(f"Outcome for {degree}: {outcome}")

    controller.events.on(SessionEventType.TARGET_CHANGED, on_target)
    controller.events.on(SessionEventType.NOTE_CONFIRMED, on_confirmed)
    controller.events.on(SessionEventType.OUTCOME_RECORDED, on_outcome)

    try:
        controller.start()
    except MicrophoneUnavailable as e:
        raise click.ClickException(f"Microphone unavailable: {e}")

    deadline = time.monotonic() + duration
    try:
        while time.monotonic() < deadline:
            controller.poll()
            time.sleep(POLL_SECONDS)
    except KeyboardInterrupt:
        pass
    finally:
        controller.stop()

    outcomes = controller.outcomes
    correct = sum(1 for o in outcomes if o)
    click.echo(
        f"\nScore: {correct} / {len(outcomes)} ({controller.accuracy_percent}%)"
    )


@cli.command()
@click.option("--key", "-k", type=KEY_CHOICES, default="C", help="Tonal center")
@click.option("--mode", "-m", type=MODE_CHOICES, default="major", help="Scale mode")
@click.option("--volume", "-v", type=click.FloatRange(0.0, 1.0), default=0.3, help="Chord volume")
@click.option("--duration", "-t", type=float, default=0.8, help="Chord length in seconds")
@click.option("--out", "-o", type=click.Path(dir_okay=False), default=None, help="Write a WAV file")
@click.option("--play", is_flag=True, help="Play the chord through the default output")
@click.pass_context
def chord(ctx, key, mode, volume, duration, out, play):
    """Render the tonic triad of a key."""
    sample_rate = _config(ctx).get_config("synth")["sample_rate"]
    freqs = triad_frequencies(key, mode)
    click.echo(f"{key_name(key)} {mode}: " + ", ".join(f"{f:.2f}Hz" for f in freqs))

    if out:
        write_wav(out, synthesize_triad(freqs, volume, duration, sample_rate), sample_rate)
        click.echo(f"Wrote {out}")

    if play:
        synth = ChordSynthesizer(sample_rate=sample_rate)
        if synth.render(key, mode, volume, duration) is None:
            click.echo("No audio output available", err=True)
        else:
            time.sleep(duration)


@cli.command()
@click.option("--key", "-k", type=KEY_CHOICES, default="C", help="Key used for degree labels")
@click.option("--mode", "-m", type=MODE_CHOICES, default="major", help="Scale mode")
@click.option("--duration", "-t", type=float, default=15.0, help="Monitor length in seconds")
@click.option("--device", type=int, default=None, help="Audio input device ID")
@click.pass_context
def listen(ctx, key, mode, duration, device):
    """Print the detected pitch class and its scale degree."""
    factory = ComponentFactory(_config(ctx))
    service = factory.create_note_detection_service(
        audio_input=factory.create_audio_input(device_id=device)
    )
    last = None

    def on_estimate(estimate):
        nonlocal last
        pitch_class = frequency_to_pitch_class(estimate.frequency) if estimate.frequency else ""
        if pitch_class and pitch_class != last:
            label = pitch_class_to_scale_degree_label(pitch_class, key, mode)
            click.echo(f"{estimate.frequency:7.1f}Hz  {pitch_class:<2}  {label}")
        last = pitch_class

    try:
        service.start(on_estimate)
    except MicrophoneUnavailable as e:
        raise click.ClickException(f"Microphone unavailable: {e}")

    try:
        time.sleep(duration)
    except KeyboardInterrupt:
        pass
    finally:
        service.stop()


@cli.command()
def devices():
    """List audio devices and supported input sample rates."""
    try:
        sd = load_sounddevice()
    except NoAudioBackend as e:
        raise click.ClickException(f"No audio backend: {e}")

    for i, device in enumerate(sd.query_devices()):
        click.echo(f"Device {i}: {device['name']}")
        click.echo(f"  Max input channels: {device['max_input_channels']}")
        click.echo(f"  Max output channels: {device['max_output_channels']}")
        click.echo(f"  Default sample rate: {device['default_samplerate']} Hz")

        if device["max_input_channels"] > 0:
            for rate in [16000, 22050, 44100, 48000]:
                try:
                    sd.check_input_settings(device=i, samplerate=rate, channels=1)
                    click.echo(f"    {rate} Hz: Supported")
                except Exception as e:
                    click.echo(f"    {rate} Hz: Not supported ({e})")

    click.echo(f"Default input device: {sd.default.device[0]}")
    click.echo(f"Default output device: {sd.default.device[1]}")


def main() -> None:
    """Entry point for the ``tonic-drill`` script."""
    cli(obj={})


if __name__ == "__main__":
    main()
