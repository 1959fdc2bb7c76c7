"""
Generate a single member poster.

Usage:
    python -m member_poster --template bg.jpg --photo me.jpg --logo logo.png \
        --name "Jane Doe" --designation "Wealth Manager" --phone 9876543210 \
        --output poster.jpeg
"""

import argparse
import logging
import sys

from .config import PosterSettings
from .errors import PosterError
from .generator import PosterAssembler
from .models import PersonInfo

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="member_poster", description="Compose a member poster")
    parser.add_argument("--template", required=True, help="Template background image")
    parser.add_argument("--photo", required=True, help="Member profile photo")
    parser.add_argument("--logo", required=True, help="Logo image")
    parser.add_argument("--name", required=True)
    parser.add_argument("--designation", default="")
    parser.add_argument("--team-name", default=None)
    parser.add_argument("--phone", default="")
    parser.add_argument("--output", required=True, help="Output JPEG path")
    return parser


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    person = PersonInfo(
        name=args.name,
        designation=args.designation,
        phone=args.phone,
        team_name=args.team_name,
        photo=args.photo,
    )

    try:
        assembler = PosterAssembler.from_settings(PosterSettings())
        path = assembler.assemble_to_file(args.template, person, args.logo, args.output)
    except PosterError as e:
        logger.error(f"Poster generation failed: {e}")
        return 1

    print(path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
