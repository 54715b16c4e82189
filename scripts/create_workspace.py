"""Provision a workspace, with an optional campaign and landing page (local-only)."""
import argparse
import os
import re

from mika import create_app
from mika.extensions import db
from mika.models import Campaign, LandingPage, Workspace


def _slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("name", help="Workspace name")
    parser.add_argument("--campaign", help="Create a campaign with this name")
    parser.add_argument("--landing-page", help="Create a landing page with this name")
    parser.add_argument("--config", default=os.environ.get("FLASK_ENV", "development"))
    args = parser.parse_args()

    app = create_app(args.config)
    with app.app_context():
        slug = _slugify(args.name)
        workspace = Workspace.query.filter_by(slug=slug).first()
        if not workspace:
            workspace = Workspace(name=args.name, slug=slug)
            db.session.add(workspace)
            db.session.flush()
        print(f"workspace     {workspace.id}  ({workspace.slug})")

        campaign = None
        if args.campaign:
            campaign = Campaign(
                workspace_id=workspace.id,
                name=args.campaign,
                slug=_slugify(args.campaign),
                status="active",
                utm_campaign=_slugify(args.campaign),
            )
            db.session.add(campaign)
            db.session.flush()
            print(f"campaign      {campaign.id}  ({campaign.slug})")

        if args.landing_page:
            page = LandingPage(
                workspace_id=workspace.id,
                campaign_id=campaign.id if campaign else None,
                name=args.landing_page,
                slug=_slugify(args.landing_page),
                status="published",
            )
            db.session.add(page)
            db.session.flush()
            print(f"landing page  {page.id}  ({page.slug})")

        db.session.commit()


if __name__ == "__main__":
    if os.environ.get("ALLOW_WORKSPACE_CREATE") != "true":
        raise SystemExit("Set ALLOW_WORKSPACE_CREATE=true to run this script.")
    main()
