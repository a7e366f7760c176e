"""Manager reports over a year or month window.

Roster and attendance rollups are computed with pandas from the arrays
embedded in each class document; pass revenue comes from a Mongo aggregate.
"""
import calendar
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from app.core.errors import NotFoundError, ValidationError
from app.core.logging import LogTimer, get_logger
from app.core.permissions import Role
from app.domain.classes import ClassOffering
from app.infrastructure.mongo import StudioStore

logger = get_logger(__name__)

REGISTRATION_COLUMNS = ["classId", "accountId", "registeredAt"]
ATTENDANCE_COLUMNS = ["classId", "accountId", "date"]
SESSION_COLUMNS = ["classId", "date", "attendees"]
SALES_COLUMNS = ["purchaseDate", "purchasePrice"]


# ----------------
# HELPER FUNCTIONS
# ----------------

def report_window(
    year: Optional[int] = None,
    month: Optional[int] = None,
    today: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """First and last instant of the requested month or year (current year by default)."""
    if month is not None and not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12", month=month)

    year = year or (today or datetime.utcnow()).year
    if month is None:
        return datetime(year, 1, 1), datetime(year, 12, 31, 23, 59, 59)

    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, 1), datetime(year, month, last_day, 23, 59, 59)


def _period(start: datetime, end: datetime, month: Optional[int]) -> Dict[str, Any]:
    return {
        "year": start.year,
        "month": month,
        "startDate": start.isoformat(),
        "endDate": end.isoformat(),
    }


def rate(numerator: float, denominator: float) -> float:
    """Percentage rounded to one decimal; 0.0 when there is nothing to divide by."""
    if not denominator:
        return 0.0
    return round(float(numerator) / float(denominator) * 100, 1)


def _average(values: List[float]) -> float:
    if not values:
        return 0.0
    return round(sum(values) / len(values), 1)


def _in_window(frame: pd.DataFrame, column: str, start: datetime, end: datetime) -> pd.DataFrame:
    if frame.empty:
        return frame
    return frame[pd.to_datetime(frame[column]).between(start, end)]


def _registration_frame(classes: List[ClassOffering]) -> pd.DataFrame:
    rows = [
        {"classId": c.class_id, "accountId": entry.account_id, "registeredAt": entry.registered_at}
        for c in classes
        for entry in c.roster
    ]
    return pd.DataFrame(rows, columns=REGISTRATION_COLUMNS)


def _attendance_frame(classes: List[ClassOffering]) -> pd.DataFrame:
    rows = [
        {"classId": c.class_id, "accountId": attendee.account_id, "date": record.date}
        for c in classes
        for record in c.attendance
        for attendee in record.attendees
    ]
    return pd.DataFrame(rows, columns=ATTENDANCE_COLUMNS)


def _session_frame(classes: List[ClassOffering]) -> pd.DataFrame:
    rows = [
        {"classId": c.class_id, "date": record.date, "attendees": len(record.attendees)}
        for c in classes
        for record in c.attendance
    ]
    return pd.DataFrame(rows, columns=SESSION_COLUMNS)


def _counts(frame: pd.DataFrame, keys) -> Dict[Any, int]:
    if frame.empty:
        return {}
    return {key: int(value) for key, value in frame.groupby(keys).size().to_dict().items()}


def _account_name(store: StudioStore, account_id: Optional[str]) -> Tuple[str, Optional[str]]:
    account = store.accounts.get(account_id) if account_id else None
    if account is None:
        return "Unknown", None
    return account.full_name, account.email


# ----------------
# REPORTS
# ----------------

def _monthly_breakdown(store: StudioStore, year: int) -> List[Dict[str, Any]]:
    start, end = report_window(year)
    clients = pd.DataFrame(
        [{"createdAt": a.created_at} for a in store.accounts.created_between(Role.CLIENT, start, end)],
        columns=["createdAt"],
    )
    sales = pd.DataFrame(
        [{"purchaseDate": p.purchase_date, "purchasePrice": p.purchase_price}
         for p in store.owned_passes.purchased_between(start, end)],
        columns=SALES_COLUMNS,
    )

    new_clients = {} if clients.empty else pd.to_datetime(clients["createdAt"]).dt.month.value_counts().to_dict()
    if sales.empty:
        sales_count, revenue = {}, {}
    else:
        by_month = sales.groupby(pd.to_datetime(sales["purchaseDate"]).dt.month)["purchasePrice"]
        sales_count = by_month.count().to_dict()
        revenue = by_month.sum().to_dict()

    return [
        {
            "month": month,
            "monthName": calendar.month_name[month],
            "newClients": int(new_clients.get(month, 0)),
            "passSales": int(sales_count.get(month, 0)),
            "revenue": float(revenue.get(month, 0.0)),
        }
        for month in range(1, 13)
    ]


def performance(store: StudioStore, year: Optional[int] = None, month: Optional[int] = None) -> Dict[str, Any]:
    """New clients and instructors, plus pass sales, for the window."""
    with LogTimer(logger, "performance_report"):
        start, end = report_window(year, month)
        sales = store.owned_passes.sales_summary(start, end)

        return {
            "period": _period(start, end, month),
            "summary": {
                "newClients": store.accounts.count_created(Role.CLIENT, start, end),
                "newInstructors": store.accounts.count_created(Role.INSTRUCTOR, start, end),
                "passSales": sales["totalSales"],
                "totalRevenue": round(sales["totalRevenue"], 2),
                "averagePassPrice": round(sales["averagePrice"], 2),
            },
            "monthlyBreakdown": _monthly_breakdown(store, start.year) if year and month is None else None,
        }


def instructor_performance(
    store: StudioStore,
    year: Optional[int] = None,
    month: Optional[int] = None,
    instructor_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Registrations and attendance of each instructor's active classes."""
    with LogTimer(logger, "instructor_performance_report"):
        start, end = report_window(year, month)

        if instructor_id:
            profile = store.instructors.get(instructor_id)
            if profile is None:
                raise NotFoundError("Instructor not found")
            profiles = [profile]
        else:
            profiles = store.instructors.find(sort=[("instructorId", 1)])

        instructors = []
        for profile in profiles:
            classes = store.classes.for_instructor(profile.instructor_id, active_only=True)
            registrations = _in_window(_registration_frame(classes), "registeredAt", start, end)
            attendance = _in_window(_attendance_frame(classes), "date", start, end)
            registered = _counts(registrations, "classId")
            attended = _counts(attendance, "classId")

            class_details = []
            for offering in classes:
                regs = registered.get(offering.class_id, 0)
                seen = attended.get(offering.class_id, 0)
                if regs or seen:
                    class_details.append({
                        "classId": offering.class_id,
                        "className": offering.class_name,
                        "classType": offering.class_type,
                        "registrations": regs,
                        "attendance": seen,
                        "attendanceRate": rate(seen, regs),
                    })

            total_registrations = int(len(registrations))
            total_attendance = int(len(attendance))
            name, email = _account_name(store, profile.account_id)
            instructors.append({
                "instructorId": profile.instructor_id,
                "name": name,
                "email": email,
                "totalClasses": len(classes),
                "totalRegistrations": total_registrations,
                "totalAttendance": total_attendance,
                "uniqueStudents": int(registrations["accountId"].nunique()) if not registrations.empty else 0,
                "attendanceRate": rate(total_attendance, total_registrations),
                "classDetails": class_details,
            })

        instructors.sort(key=lambda item: item["totalRegistrations"], reverse=True)
        return {
            "period": _period(start, end, month),
            "summary": {
                "totalInstructors": len(instructors),
                "totalRegistrations": sum(i["totalRegistrations"] for i in instructors),
                "totalAttendance": sum(i["totalAttendance"] for i in instructors),
                "averageAttendanceRate": _average([i["attendanceRate"] for i in instructors]),
            },
            "instructors": instructors,
        }


def customer_attendance(
    store: StudioStore,
    year: Optional[int] = None,
    month: Optional[int] = None,
    account_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Scheduled versus attended classes for every client registered in the window."""
    with LogTimer(logger, "customer_attendance_report"):
        start, end = report_window(year, month)

        clients = store.accounts.by_role(Role.CLIENT)
        if account_id:
            clients = [client for client in clients if client.account_id == account_id]

        customers = []
        for client in clients:
            classes = store.classes.with_registrant(client.account_id)
            registrations = _in_window(_registration_frame(classes), "registeredAt", start, end)
            registrations = registrations[registrations["accountId"] == client.account_id]
            attendance = _in_window(_attendance_frame(classes), "date", start, end)
            attendance = attendance[attendance["accountId"] == client.account_id]
            scheduled = _counts(registrations, "classId")
            attended = _counts(attendance, "classId")

            class_details = []
            for offering in classes:
                count = scheduled.get(offering.class_id, 0)
                if not count:
                    continue
                seen = attended.get(offering.class_id, 0)
                class_details.append({
                    "classId": offering.class_id,
                    "className": offering.class_name,
                    "classType": offering.class_type,
                    "instructorId": offering.instructor_id,
                    "scheduled": count,
                    "attended": seen,
                    "attendanceRate": rate(seen, count),
                })

            total_scheduled = sum(d["scheduled"] for d in class_details)
            if not total_scheduled:
                continue
            total_attended = sum(d["attended"] for d in class_details)
            customers.append({
                "accountId": client.account_id,
                "name": client.full_name,
                "email": client.email,
                "phone": client.phone,
                "totalScheduled": total_scheduled,
                "totalAttended": total_attended,
                "attendanceRate": rate(total_attended, total_scheduled),
                "classDetails": class_details,
            })

        customers.sort(key=lambda item: item["attendanceRate"], reverse=True)
        return {
            "period": _period(start, end, month),
            "summary": {
                "totalCustomers": len(customers),
                "totalScheduled": sum(c["totalScheduled"] for c in customers),
                "totalAttended": sum(c["totalAttended"] for c in customers),
                "averageAttendanceRate": _average([c["attendanceRate"] for c in customers]),
            },
            "customers": customers,
        }


def _class_type_stats(classes: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    if not classes:
        return {}
    frame = pd.DataFrame(classes, columns=["classId", "classType", "totalRegistrations", "totalAttendance"])
    grouped = frame.groupby("classType").agg(
        classes=("classId", "count"),
        totalRegistrations=("totalRegistrations", "sum"),
        totalAttendance=("totalAttendance", "sum"),
    )
    return {
        class_type: {
            "classes": int(row["classes"]),
            "totalRegistrations": int(row["totalRegistrations"]),
            "totalAttendance": int(row["totalAttendance"]),
            "averageAttendanceRate": rate(row["totalAttendance"], row["totalRegistrations"]),
        }
        for class_type, row in grouped.iterrows()
    }


def general_attendance(store: StudioStore, year: Optional[int] = None, month: Optional[int] = None) -> Dict[str, Any]:
    """Popularity, attendance and capacity use of every active class."""
    with LogTimer(logger, "general_attendance_report"):
        start, end = report_window(year, month)
        offerings = store.classes.all_classes(active_only=True)

        registered = _counts(_in_window(_registration_frame(offerings), "registeredAt", start, end), "classId")
        attended = _counts(_in_window(_attendance_frame(offerings), "date", start, end), "classId")
        sessions = _counts(_in_window(_session_frame(offerings), "date", start, end), "classId")

        classes = []
        for offering in offerings:
            regs = registered.get(offering.class_id, 0)
            seen = attended.get(offering.class_id, 0)
            if not (regs or seen):
                continue
            session_count = sessions.get(offering.class_id, 0)
            profile = store.instructors.get(offering.instructor_id)
            instructor_name, _ = _account_name(store, profile.account_id if profile else None)
            classes.append({
                "classId": offering.class_id,
                "className": offering.class_name,
                "classType": offering.class_type,
                "instructorId": offering.instructor_id,
                "instructorName": instructor_name,
                "capacity": offering.capacity,
                "totalRegistrations": regs,
                "totalAttendance": seen,
                "attendanceRate": rate(seen, regs),
                "capacityUtilization": rate(regs, offering.capacity),
                "sessionCount": session_count,
                "averageAttendancePerSession": round(seen / session_count, 1) if session_count else 0.0,
            })

        classes.sort(key=lambda item: item["totalRegistrations"], reverse=True)
        return {
            "period": _period(start, end, month),
            "summary": {
                "totalClasses": len(classes),
                "totalRegistrations": sum(c["totalRegistrations"] for c in classes),
                "totalAttendance": sum(c["totalAttendance"] for c in classes),
                "averageAttendanceRate": _average([c["attendanceRate"] for c in classes]),
                "averageCapacityUtilization": _average([c["capacityUtilization"] for c in classes]),
            },
            "classTypeStats": _class_type_stats(classes),
            "classes": classes,
        }
