from django.urls import path
from . import views

urlpatterns = [
    # Health check
    path("health", views.health, name="health"),

    # Podcasts (fixed paths before podcasts/<id>)
    path("podcasts/submit", views.podcast_submit, name="podcast_submit"),
    path("podcasts/validate-rss", views.podcast_validate_rss, name="podcast_validate_rss"),
    path("podcasts/me", views.my_podcasts, name="my_podcasts"),
    path("podcasts/pitches", views.podcast_pitches, name="podcast_pitches"),
    path("podcasts/services", views.podcast_services, name="podcast_services"),
    path("podcasts/services/<str:service_id>", views.podcast_service_detail, name="podcast_service_detail"),
    path("podcasts/wishlist", views.podcast_wishlist, name="podcast_wishlist"),
    path("podcasts/wishlist/add-guest", views.podcast_wishlist_add, name="podcast_wishlist_add"),
    path("podcasts/wishlist/update", views.podcast_wishlist_update, name="podcast_wishlist_update"),
    path("podcasts/wishlist/remove", views.podcast_wishlist_remove, name="podcast_wishlist_remove"),
    path("podcasts/<str:podcast_id>", views.podcast_detail, name="podcast_detail"),
    path("podcasts/<str:podcast_id>/episodes", views.podcast_episodes, name="podcast_episodes"),
    path("podcasts/<str:podcast_id>/claim", views.podcast_claim, name="podcast_claim"),
    path("podcasts/<str:podcast_id>/report", views.podcast_report, name="podcast_report"),

    # Guests
    path("guest/create-profile", views.guest_create_profile, name="guest_create_profile"),
    path("guest/update-profile", views.guest_update_profile, name="guest_update_profile"),
    path("guest/enable-guest-mode", views.guest_enable_mode, name="guest_enable_mode"),
    path("guest/request-verification", views.guest_request_verification, name="guest_request_verification"),
    path("guest/invite/<str:token>", views.guest_invite_detail, name="guest_invite_detail"),
    path("guest/accept-invite", views.guest_accept_invite, name="guest_accept_invite"),
    path("guest/send-invite", views.guest_send_invite, name="guest_send_invite"),
    path("guest/wishlist", views.guest_wishlist, name="guest_wishlist"),
    path("guest/wishlist/add-podcast", views.guest_wishlist_add, name="guest_wishlist_add"),
    path("guest/wishlist/update", views.guest_wishlist_update, name="guest_wishlist_update"),
    path("guest/wishlist/remove", views.guest_wishlist_remove, name="guest_wishlist_remove"),

    # Matching
    path("matching/check-matches", views.check_matches, name="check_matches"),
    path("matching/dismiss-match", views.dismiss_match, name="dismiss_match"),
    path("matching/my-matches", views.my_matches, name="my_matches"),
    path("matching/recommendations", views.recommendations, name="recommendations"),

    # Notifications
    path("notifications", views.notifications, name="notifications"),

    # Collaboration lifecycle
    path("collaboration/submit-pitch", views.submit_pitch, name="submit_pitch"),
    path("collaboration/submit-podcast-pitch", views.submit_podcast_pitch, name="submit_podcast_pitch"),
    path("collaboration/respond-to-pitch", views.respond_to_pitch, name="respond_to_pitch"),
    path("collaboration/guest/initiate", views.guest_initiate, name="guest_initiate"),
    path("collaboration/schedule/propose", views.schedule_propose, name="schedule_propose"),
    path("collaboration/schedule/respond", views.schedule_respond, name="schedule_respond"),
    path("collaboration/schedule/reschedule", views.schedule_reschedule, name="schedule_reschedule"),
    path("collaboration/calendar-invite", views.calendar_invite, name="calendar_invite"),
    path("collaboration/recording-link", views.recording_link, name="recording_link"),
    path("collaboration/recording-complete", views.recording_complete, name="recording_complete"),
    path("collaboration/release-episode", views.release_episode, name="release_episode"),
    path("collaboration/trigger-payout", views.trigger_payout, name="trigger_payout"),
    path("collaboration/mark-complete", views.mark_complete, name="mark_complete"),
    path("collaboration/feedback", views.feedback, name="feedback"),
    path("collaboration/<str:collaboration_id>", views.collaboration_detail, name="collaboration_detail"),

    # Payments and payout accounts
    path("payment/initialize", views.payment_initialize, name="payment_initialize"),
    path("payment/verify", views.payment_verify, name="payment_verify"),
    path("flutterwave/banks", views.flutterwave_banks, name="flutterwave_banks"),
    path("flutterwave/subaccount", views.flutterwave_subaccount, name="flutterwave_subaccount"),

    # Contracts
    path("contract/generate", views.contract_generate, name="contract_generate"),
    path("contract/webhook", views.contract_webhook, name="contract_webhook"),

    # Legends and admin
    path("legend-application", views.legend_application, name="legend_application"),
    path("admin/review-application", views.review_application, name="review_application"),
    path("admin/review-podcast", views.review_podcast, name="review_podcast"),
    path("admin/verify-guest", views.verify_guest, name="verify_guest"),
    path("admin/guest-settings", views.guest_settings, name="guest_settings"),
    path("admin/update-prospect-email", views.update_prospect_email, name="update_prospect_email"),

    # Cron
    path("cron/send-reminders", views.send_reminders, name="send_reminders"),
]
