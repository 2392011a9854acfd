import argparse
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

from photorenamer.core.context import TaggingContext
from photorenamer.core.errors import PhotoRenamerError
from photorenamer.lib.filetype import describe_media_type, detect_media_type, is_supported_media
from photorenamer.lib.naming import identity_of
from photorenamer.services.repository import DEFAULT_PHOTO_STORE, DEFAULT_TAG_STORE, IndexRepository

DEFAULT_RENAME_LOG = "./renamed_history.txt"
ORIGINAL = "original"


def _load_config(path: str, verbose: bool = True) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        if verbose:
            print(f"_load_config: path does not exist: {p}")
        return {}
    try:
        with p.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as e:
        print(f"ERROR: failed to read config file {p}: {e}")
        return {}
    if not isinstance(data, dict):
        print(f"ERROR: config file {p} must hold a JSON object")
        return {}
    if verbose:
        print(f"Config loaded from: {p}")
    return data


def _validate_and_normalize_config(cfg: dict) -> dict:
    out: dict = {}
    out["tag_store"] = str(cfg["tag_store"]) if cfg.get("tag_store") else DEFAULT_TAG_STORE
    out["photo_store"] = str(cfg["photo_store"]) if cfg.get("photo_store") else DEFAULT_PHOTO_STORE
    # an explicit empty string / null disables the rename log
    out["rename_log"] = str(cfg["rename_log"]) if cfg.get("rename_log", DEFAULT_RENAME_LOG) else None
    out["check_media"] = bool(cfg.get("check_media", True))
    return out


def _resolve_config(args) -> dict:
    user_cfg = getattr(args, "config", None)
    if user_cfg:
        raw_cfg = _load_config(user_cfg, verbose=bool(getattr(args, "verbose", False)))
    elif Path("config.json").exists():
        raw_cfg = _load_config("config.json", verbose=False)
    else:
        raw_cfg = {}
    cfg = _validate_and_normalize_config(raw_cfg)

    # CLI overrides (if provided) take precedence over config file
    for key in ("tag_store", "photo_store", "rename_log"):
        value = getattr(args, key, None)
        if value:
            cfg[key] = value
    if getattr(args, "no_media_check", False):
        cfg["check_media"] = False
    return cfg


def _setup_logging(rename_log: Optional[str], verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if rename_log:
        renames = logging.getLogger("photorenamer.renames")
        for old in [h for h in renames.handlers if isinstance(h, logging.FileHandler)]:
            renames.removeHandler(old)
            old.close()
        handler = logging.FileHandler(rename_log, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(message)s", "%Y/%m/%d %H:%M:%S"))
        renames.setLevel(logging.INFO)
        renames.addHandler(handler)
        # rename history goes to its file, not the console
        renames.propagate = verbose


def _iter_files(folder: Path, recursive: bool) -> Iterable[Path]:
    """Iterate over files in folder, skipping directories and entries we cannot stat."""
    candidates = folder.rglob("*") if recursive else folder.iterdir()
    for p in candidates:
        try:
            if p.is_file():
                yield p
        except OSError:
            continue


def _open_context(args) -> TaggingContext:
    # Tests inject a ready context via `args.context`.
    ctx = getattr(args, "context", None)
    if ctx is not None:
        return ctx
    cfg = _resolve_config(args)
    _setup_logging(cfg["rename_log"], bool(getattr(args, "verbose", False)))
    repo = IndexRepository.from_urls(cfg["tag_store"], cfg["photo_store"])
    return TaggingContext.open(repo, check_media=cfg["check_media"])


def _print_photo(photo) -> None:
    print(f"Photo: {photo.current_name} (identity={photo.identity})")
    print(f"Path: {photo.file_path}")
    print(f"Type: {describe_media_type(detect_media_type(str(photo.file_path)))}")
    print("Tags: " + (", ".join(sorted(photo.tags)) if photo.tags else "(none)"))
    print("History:")
    if not photo.history:
        print(f"  {photo.creation_timestamp}--> {photo.identity}")
    for stamp, snap in photo.snapshots():
        marker = "  *" if stamp == photo.current_timestamp else "   "
        print(f"{marker}{stamp}--> {snap.name}")


def show(args):
    ctx = _open_context(args)
    photo = ctx.select(args.file)
    _print_photo(photo)
    return 0


def add(args):
    ctx = _open_context(args)
    photo = ctx.select(args.file)
    added = ctx.add_tags(photo, args.tags)
    if not added:
        print(f"No new tags for {photo.current_name}")
        return 0
    print(f"Done adding tags to {photo.current_name}")
    print(photo.describe_tags(), end="")
    return 0


def delete(args):
    ctx = _open_context(args)
    photo = ctx.select(args.file)
    removed = ctx.delete_tags(photo, args.tags)
    if removed:
        print(f"Deleted {', '.join(removed)} from {photo.current_name}")
    else:
        print(f"{photo.current_name} had none of those tags")
    print(photo.describe_tags(), end="")
    return 0


def revert(args):
    ctx = _open_context(args)
    photo = ctx.select(args.file)
    timestamp = photo.creation_timestamp if args.timestamp == ORIGINAL else args.timestamp
    if not ctx.revert(photo, timestamp):
        print(f"No history entry at {timestamp} for {photo.identity}")
        return 1
    print(f"Reverted to {timestamp}: {photo.current_name}")
    return 0


def tags(args):
    ctx = _open_context(args)
    all_tags = ctx.tags.all()
    if not all_tags:
        print("No tags in use")
        return 0
    for name in sorted(all_tags):
        print(f"{name} ({len(all_tags[name].photos)} photos)")
    return 0


def photos(args):
    ctx = _open_context(args)
    known = ctx.photos.all()
    if not known:
        print("No photos recorded")
        return 0
    for identity in sorted(known):
        photo = known[identity]
        line = f"{identity} -> {photo.current_name}"
        if photo.tags:
            line += f" [{', '.join(photo.tags)}]"
        print(line)
    return 0


def browse(args):
    ctx = _open_context(args)
    folder = Path(args.folder)
    if not folder.is_dir():
        print(f"ERROR: not a folder: {folder}")
        return 1
    count = 0
    for p in sorted(_iter_files(folder, args.recursive)):
        media_type = detect_media_type(str(p))
        if not is_supported_media(media_type):
            continue
        count += 1
        line = f"{p.relative_to(folder)} ({describe_media_type(media_type)})"
        photo = ctx.photos.find(identity_of(p.name))
        if photo is not None and photo.current_name == p.name:
            line += " recorded, tags: " + (", ".join(photo.tags) if photo.tags else "(none)")
        print(line)
    print(f"{count} photo(s) in {folder}")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(prog="photorenamer")
    parser.add_argument("--config", help="Path to JSON config file (default: ./config.json when present)")
    parser.add_argument("--tag-store", dest="tag_store", help="Override config: tag index store (path or SQLAlchemy URL)")
    parser.add_argument("--photo-store", dest="photo_store", help="Override config: photo index store (path or SQLAlchemy URL)")
    parser.add_argument("--rename-log", dest="rename_log", help="Override config: file receiving the rename history")
    parser.add_argument("--no-media-check", action="store_true", help="Accept files that are not detected as images")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd")

    p_show = sub.add_parser("show", help="Show a photo's name, tags and history")
    p_show.add_argument("file")
    p_show.set_defaults(func=show)

    p_add = sub.add_parser("add", help="Add comma-separated tags to a photo")
    p_add.add_argument("file")
    p_add.add_argument("tags")
    p_add.set_defaults(func=add)

    p_delete = sub.add_parser("delete", help="Delete comma-separated tags from a photo")
    p_delete.add_argument("file")
    p_delete.add_argument("tags")
    p_delete.set_defaults(func=delete)

    p_revert = sub.add_parser("revert", help=f"Revert a photo to a history timestamp ('{ORIGINAL}' for the untagged name)")
    p_revert.add_argument("file")
    p_revert.add_argument("timestamp")
    p_revert.set_defaults(func=revert)

    p_tags = sub.add_parser("tags", help="List every tag in use")
    p_tags.set_defaults(func=tags)

    p_photos = sub.add_parser("photos", help="List every recorded photo with its current name")
    p_photos.set_defaults(func=photos)

    p_browse = sub.add_parser("browse", help="List the photos in a folder and which of them are recorded")
    p_browse.add_argument("folder")
    p_browse.add_argument("--recursive", action="store_true", help="Descend into subfolders")
    p_browse.set_defaults(func=browse)

    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    try:
        return args.func(args)
    except PhotoRenamerError as exc:
        print(f"ERROR: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
