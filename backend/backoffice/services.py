"""
Read-side aggregations for the admin and owner dashboards.
"""

from django.db.models import Count, Max, Q, Sum

from accounts.models import User
from affiliates.models import AffiliateCode
from rides.models import Ride
from subscriptions.models import DriverSubscription

LIST_LIMIT = 100


def search_rides(search: str = "", status: str = ""):
    rides = Ride.objects.select_related("client", "driver").order_by("-created_at")
    if status:
        rides = rides.filter(status=status)
    if search:
        rides = rides.filter(
            Q(pickup_address__icontains=search)
            | Q(drop_address__icontains=search)
            | Q(client__full_name__icontains=search)
            | Q(client__username__icontains=search)
            | Q(driver__full_name__icontains=search)
            | Q(driver__username__icontains=search)
        )
    return rides[:LIST_LIMIT]


def search_drivers(search: str = ""):
    drivers = User.objects.filter(role=User.ROLE_DRIVER).order_by("-date_joined")
    if search:
        drivers = drivers.filter(
            Q(full_name__icontains=search)
            | Q(username__icontains=search)
            | Q(email__icontains=search)
            | Q(phone_number__icontains=search)
        )
    drivers = list(drivers[:LIST_LIMIT])
    subscriptions = {
        sub.driver_id: sub
        for sub in DriverSubscription.objects.filter(driver__in=drivers)
    }
    return [(driver, subscriptions.get(driver.id)) for driver in drivers]


def driver_pairs(search: str = "") -> dict:
    """
    Completed rides grouped by (driver, client).

    Pairs are ordered by trip count, then by the most recent ride. Each pair
    carries the price and status of its latest ride.
    """
    rides = (
        Ride.objects.filter(status="completed", driver__isnull=False)
        .select_related("client", "driver")
        .order_by("-completed_at", "-id")
    )
    if search:
        rides = rides.filter(
            Q(client__full_name__icontains=search)
            | Q(client__username__icontains=search)
            | Q(driver__full_name__icontains=search)
            | Q(driver__username__icontains=search)
        )

    pairs = {}
    for ride in rides:
        key = (ride.driver_id, ride.client_id)
        pair = pairs.get(key)
        if pair is None:
            # Rides arrive newest first, so the first one seen is the latest
            pairs[key] = {
                "driver": {"id": ride.driver_id, "name": ride.driver.display_name, "phone": ride.driver.phone_number},
                "client": {"id": ride.client_id, "name": ride.client.display_name, "phone": ride.client.phone_number},
                "trips": 1,
                "last_ride_at": ride.completed_at or ride.created_at,
                "last_price": ride.final_price,
                "last_status": ride.status,
            }
        else:
            pair["trips"] += 1

    ordered = sorted(pairs.values(), key=lambda p: (p["trips"], p["last_ride_at"]), reverse=True)
    return {
        "pairs": ordered,
        "totals": {
            "trips": sum(p["trips"] for p in ordered),
            "drivers": len({p["driver"]["id"] for p in ordered}),
            "clients": len({p["client"]["id"] for p in ordered}),
            "pairs": len(ordered),
        },
    }


def affiliate_stats(search: str = "") -> dict:
    codes = AffiliateCode.objects.select_related("affiliate").order_by("code")
    if search:
        codes = codes.filter(
            Q(code__icontains=search)
            | Q(affiliate__full_name__icontains=search)
            | Q(affiliate__username__icontains=search)
            | Q(affiliate__email__icontains=search)
        )
    codes = list(codes)

    referrals = {
        row["referred_by_code"]: row
        for row in User.objects.filter(
            role=User.ROLE_CLIENT,
            referred_by_code__in=[c.code for c in codes],
        ).values("referred_by_code").annotate(count=Count("id"), last_signup=Max("date_joined"))
    }

    rows = []
    for code in codes:
        stats = referrals.get(code.code, {})
        rows.append({
            "affiliate": {
                "id": code.affiliate_id,
                "name": code.affiliate.display_name,
                "email": code.affiliate.email,
            },
            "code": code.code,
            "referred_count": stats.get("count", 0),
            "last_signup": stats.get("last_signup"),
        })
    rows.sort(key=lambda r: r["referred_count"], reverse=True)

    return {
        "affiliates": rows,
        "totals": {
            "affiliates": len(rows),
            "referred_clients": sum(r["referred_count"] for r in rows),
        },
    }


def owner_overview() -> dict:
    revenue = Ride.objects.filter(payment_status="paid").aggregate(total=Sum("final_price"))["total"]
    return {
        "total_rides": Ride.objects.count(),
        "completed_rides": Ride.objects.filter(status="completed").count(),
        "active_rides": Ride.objects.filter(status__in=Ride.ACTIVE_STATUSES).count(),
        "revenue": revenue or 0,
        "drivers": User.objects.filter(role=User.ROLE_DRIVER).count(),
        "clients": User.objects.filter(role=User.ROLE_CLIENT).count(),
        "expired_subscriptions": DriverSubscription.objects.filter(status="expired").count(),
    }
