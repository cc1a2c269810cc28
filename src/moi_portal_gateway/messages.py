"""User-facing (Arabic) messages for the traffic-sync flows.

The UI shows these verbatim. Technical detail never goes in here; it travels
in the `error`/`details` fields of a sync outcome and in the logs.
"""

MESSAGES = {
    # Request validation
    'member_id_required': 'معرف العضو مطلوب',
    'access_token_required': 'رمز المصادقة مطلوب',
    'portal_token_required': 'رمز بوابة المرور مطلوب',
    'email_required': 'البريد الإلكتروني مطلوب',
    'email_invalid': 'البريد الإلكتروني غير صحيح',
    'national_id_required': 'الرقم القومي مطلوب',
    'national_id_invalid': 'الرقم القومي يجب أن يتكون من 14 رقم',
    'nationality_type_invalid': 'نوع الجنسية غير صالح',
    'password_required': 'كلمة المرور مطلوبة',

    # Profile fields
    'profile_full_name_missing': 'الاسم الكامل غير موجود في ملف المستخدم',
    'profile_mobile_missing': 'رقم الهاتف غير موجود في ملف المستخدم',
    'profile_identity_missing': 'رقم الهوية غير موجود في ملف المستخدم',
    'profile_national_id_format': 'رقم الهوية يجب أن يكون 14 رقماً بالضبط',
    'profile_passport_format': 'رقم جواز السفر يجب أن يتكون من 5 أحرف على الأقل',
    'profile_mobile_format': (
        'رقم الهاتف غير صالح. يجب أن يبدأ بـ 010 أو 011 أو 012 أو 015 ويكون 11 رقماً'
    ),

    # Profile fetch
    'session_expired': 'انتهت صلاحية الجلسة، يرجى تسجيل الدخول مرة أخرى',
    'profile_fetch_failed': 'فشل الحصول على بيانات المستخدم',
    'profile_invalid': 'بيانات المستخدم غير صالحة',

    # Kiosk registrar
    'kiosk_auth_failed': 'فشل المصادقة مع خدمة المرور',
    'kiosk_token_missing': 'فشل الحصول على رمز المصادقة',
    'kiosk_register_failed': 'فشل تسجيل المستخدم في خدمة المرور',
    'kiosk_validation_error': 'خطأ في التحقق من البيانات',
    'kiosk_authorization_error': 'خطأ في المصادقة',
    'kiosk_register_rejected': 'فشل التسجيل في خدمة المرور',
    'kiosk_register_success': 'تم التسجيل بنجاح في خدمة المرور',

    # Traffic portal bridge
    'portal_validate_login_failed': 'فشل التحقق من بيانات الدخول إلى بوابة المرور',
    'portal_claim_session_failed': 'فشل إنشاء جلسة بوابة المرور',
    'portal_continue_validation_failed': 'فشل استكمال التحقق من بيانات المستخدم في بوابة المرور',
    'portal_browser_failed': 'فشل تسجيل الدخول التلقائي إلى بوابة المرور، يرجى المحاولة مرة أخرى',
    'portal_sync_success': 'تم ربط حسابك بخدمة المرور بنجاح',

    # Service level
    'sync_disabled': 'خدمة المزامنة مع المرور غير مفعلة حالياً',
    'server_config_error': 'خطأ في إعدادات الخادم',
    'unexpected_error': 'حدث خطأ غير متوقع',
    'method_not_allowed': 'Method not allowed',
}


def message(key: str) -> str:
    """Return the localized message for `key` (the key itself if unknown)."""
    return MESSAGES.get(key, key)
