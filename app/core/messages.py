"""User-facing (Georgian) messages returned in error and status payloads."""
from __future__ import annotations

UNAUTHORIZED = "არაავტორიზებული"
INVALID_CREDENTIALS = "არასწორი ელ.ფოსტა ან პაროლი"
EMAIL_TAKEN = "მომხმარებელი ამ ელ.ფოსტით უკვე არსებობს"
INVALID_DATA = "არასწორი მონაცემები"
INVALID_PARAMS = "არასწორი პარამეტრები"
GENERIC_FAILURE = "მოხდა შეცდომა"

COMPANY_NOT_FOUND = "კომპანია ვერ მოიძებნა"

CLIENT_NOT_FOUND = "კლიენტი ვერ მოიძებნა"
CLIENT_INACTIVE = "კლიენტი არააქტიურია"
CLIENT_EMAIL_TAKEN = "კლიენტი ამ ელ.ფოსტით უკვე არსებობს"
CLIENT_TAX_ID_TAKEN = "კლიენტი ამ საიდენტიფიკაციო კოდით უკვე არსებობს"
CLIENT_TAX_ID_REQUIRED = "იურიდიული პირისთვის საიდენტიფიკაციო კოდი სავალდებულოა"
CLIENT_DEACTIVATED = "კლიენტს აქვს ინვოისები და გადავიდა არააქტიურ სტატუსში"
CLIENT_DELETED = "კლიენტი წარმატებით წაიშალა"

SERVICE_NOT_FOUND = "სერვისი ვერ მოიძებნა"

INVOICE_NOT_FOUND = "ინვოისი ვერ მოიძებნა"
INVOICE_NOT_EDITABLE = "ინვოისის რედაქტირება შეუძლებელია ამ სტატუსში"
INVOICE_ONLY_DRAFT_DELETABLE = "მხოლოდ მონახაზის სტატუსის ინვოისის წაშლა შეიძლება"
INVOICE_DELETED = "ინვოისი წარმატებით წაიშალა"
INVOICE_DUPLICATED = "ინვოისი წარმატებით დუბლირდა"
INVOICE_STATUS_TRANSITION = "სტატუსის ასეთი ცვლილება დაუშვებელია"
INVOICE_ITEMS_REQUIRED = "მინიმუმ ერთი პროდუქტი/სერვისი აუცილებელია"
INVOICE_NUMBER_CONFLICT = "ინვოისის ნომრის გენერირება ვერ მოხერხდა, სცადეთ თავიდან"
INVALID_PERIOD = "არასწორი პერიოდი. მხოლოდ 1, 3, 6, ან 12 თვე"
NO_CREDITS = "არასაკმარისი კრედიტები"
UNKNOWN_PLAN = "უცნობი გეგმა"

PUBLIC_INVOICE_NOT_FOUND = "პუბლიკური ინვოისი ვერ მოიძებნა"
PUBLIC_LINK_EXPIRY_PAST = "ბმულის ვადა მომავალში უნდა იყოს"

RECIPIENT_MISSING = "მიმღების ელ.ფოსტა მითითებული არ არის"
EMAIL_FAILED = "ელ.ფოსტის გაგზავნა ვერ მოხერხდა"
EMAIL_SENT = "ინვოისი წარმატებით გაიგზავნა"

STATUS_MESSAGES = {
    "draft": "ინვოისი გადავიდა მონახაზის სტატუსში",
    "sent": "ინვოისი მონიშნულია როგორც გაგზავნილი",
    "paid": "ინვოისი მონიშნულია როგორც გადახდილი",
    "overdue": "ინვოისი მონიშნულია როგორც ვადაგადაცილებული",
    "cancelled": "ინვოისი გაუქმებულია",
}

STATUS_LABELS = {
    "draft": "მონახაზი",
    "sent": "გაგზავნილი",
    "paid": "გადახდილი",
    "overdue": "ვადაგადაცილებული",
    "cancelled": "გაუქმებული",
}
