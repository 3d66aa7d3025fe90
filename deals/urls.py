from django.urls import path

from . import api_views as aviews
from . import consumer_views as cviews
from . import merchant_views as mviews
from .views_root import root_router


app_name = "deals"

urlpatterns = [

    path("", root_router, name="root"),

    # consumer
    path("consumer/towns/", cviews.towns_list, name="towns_list"),
    path("consumer/area/unlock/", cviews.area_unlock, name="area_unlock"),
    path("consumer/offers/", cviews.offers_list, name="offers_list"),
    path("consumer/offers/<int:offer_id>/", cviews.offer_detail, name="offer_detail"),
    path("consumer/offers/<int:offer_id>/claim/", cviews.offer_claim, name="offer_claim"),
    path("consumer/claims/<int:claim_id>/status/", cviews.claim_status, name="claim_status"),
    path("consumer/redemptions/", cviews.my_redemptions, name="my_redemptions"),

    # merchant (counter)
    path("merchant/scan/redeem/", mviews.scan_redeem, name="merchant_scan_redeem"),
    path("merchant/dashboard/", mviews.dashboard, name="merchant_dashboard"),
    path("merchant/poster/", mviews.qr_poster, name="merchant_poster"),

    # JSON API
    path("api/auth/send-code/", aviews.send_code, name="send_code"),
    path("api/auth/verify-code/", aviews.verify_code, name="verify_code"),
    path("api/auth/check-availability/", aviews.check_availability, name="check_availability"),
    path("api/auth/create/", aviews.create_account, name="create_account"),
    path("api/admin/create-user/", aviews.admin_create_user, name="admin_create_user"),
    path("api/admin/approve-application/", aviews.approve_application, name="approve_application"),
    path("api/venue/register/", aviews.venue_register, name="venue_register"),
    path("api/waitlist/join/", aviews.waitlist_join, name="waitlist_join"),
    path("api/support/submit/", aviews.support_submit, name="support_submit"),
]
