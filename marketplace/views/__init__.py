from .health import health
from .podcasts import (
    podcast_submit,
    podcast_validate_rss,
    podcast_detail,
    podcast_episodes,
    podcast_claim,
    podcast_report,
    my_podcasts,
    podcast_pitches,
    podcast_services,
    podcast_service_detail,
)
from .pitches import submit_pitch, submit_podcast_pitch, respond_to_pitch
from .guests import (
    guest_create_profile,
    guest_update_profile,
    guest_enable_mode,
    guest_request_verification,
    guest_invite_detail,
    guest_accept_invite,
    guest_send_invite,
)
from .wishlists import (
    guest_wishlist,
    guest_wishlist_add,
    guest_wishlist_update,
    guest_wishlist_remove,
    podcast_wishlist,
    podcast_wishlist_add,
    podcast_wishlist_update,
    podcast_wishlist_remove,
)
from .matching import check_matches, dismiss_match, my_matches, recommendations
from .notifications import notifications
from .collaborations import guest_initiate, trigger_payout, mark_complete, feedback, collaboration_detail
from .scheduling import schedule_propose, schedule_respond, schedule_reschedule, calendar_invite
from .recording import recording_link, recording_complete, release_episode
from .payments import payment_initialize, payment_verify
from .contracts import contract_generate, contract_webhook
from .flutterwave import flutterwave_banks, flutterwave_subaccount
from .legends import legend_application
from .admin import review_application, review_podcast, verify_guest, guest_settings, update_prospect_email
from .cron import send_reminders

__all__ = [
    "health",
    "podcast_submit",
    "podcast_validate_rss",
    "podcast_detail",
    "podcast_episodes",
    "podcast_claim",
    "podcast_report",
    "my_podcasts",
    "podcast_pitches",
    "podcast_services",
    "podcast_service_detail",
    "submit_pitch",
    "submit_podcast_pitch",
    "respond_to_pitch",
    "guest_create_profile",
    "guest_update_profile",
    "guest_enable_mode",
    "guest_request_verification",
    "guest_invite_detail",
    "guest_accept_invite",
    "guest_send_invite",
    "guest_wishlist",
    "guest_wishlist_add",
    "guest_wishlist_update",
    "guest_wishlist_remove",
    "podcast_wishlist",
    "podcast_wishlist_add",
    "podcast_wishlist_update",
    "podcast_wishlist_remove",
    "check_matches",
    "dismiss_match",
    "my_matches",
    "recommendations",
    "notifications",
    "guest_initiate",
    "trigger_payout",
    "mark_complete",
    "feedback",
    "collaboration_detail",
    "schedule_propose",
    "schedule_respond",
    "schedule_reschedule",
    "calendar_invite",
    "recording_link",
    "recording_complete",
    "release_episode",
    "payment_initialize",
    "payment_verify",
    "contract_generate",
    "contract_webhook",
    "flutterwave_banks",
    "flutterwave_subaccount",
    "legend_application",
    "review_application",
    "review_podcast",
    "verify_guest",
    "guest_settings",
    "update_prospect_email",
    "send_reminders",
]
