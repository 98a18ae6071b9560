"""Interface labels for the supported languages; missing keys fall back to English."""

DEFAULT_LANGUAGE = "en"
RTL_LANGUAGES = ("ar",)

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Español",
    "fr": "Français",
    "de": "Deutsch",
    "ar": "العربية",
    "zh": "中文",
}

LABELS = {
    "en": {
        "dashboard": "Dashboard",
        "analytics": "Analytics",
        "contracts": "Contracts",
        "new_contract": "New Contract",
        "manage_issues": "Manage Issues",
        "profile": "Profile",
        "logout": "Sign Out",
        "welcome": "Welcome back",
        "total_contracts": "Total Contracts",
        "total_weight": "Total Weight",
        "avg_items_per_box": "Avg Items/Box",
        "active_contracts": "Active Contracts",
        "recent_contracts": "Recent Contracts",
        "recent_activity": "Recent Activity",
        "view_all": "View All",
        "no_contracts": "No contracts yet",
        "no_activity": "No recent activity",
    },
    "es": {
        "dashboard": "Panel",
        "analytics": "Analítica",
        "contracts": "Contratos",
        "new_contract": "Nuevo Contrato",
        "manage_issues": "Gestionar Incidencias",
        "profile": "Perfil",
        "logout": "Cerrar Sesión",
        "welcome": "Bienvenido de nuevo",
        "total_contracts": "Contratos Totales",
        "total_weight": "Peso Total",
        "avg_items_per_box": "Artículos/Caja Prom.",
        "active_contracts": "Contratos Activos",
        "recent_contracts": "Contratos Recientes",
        "recent_activity": "Actividad Reciente",
        "view_all": "Ver Todo",
        "no_contracts": "Aún no hay contratos",
        "no_activity": "Sin actividad reciente",
    },
    "fr": {
        "dashboard": "Tableau de bord",
        "analytics": "Analytique",
        "contracts": "Contrats",
        "new_contract": "Nouveau Contrat",
        "manage_issues": "Gérer les Problèmes",
        "profile": "Profil",
        "logout": "Déconnexion",
        "welcome": "Bon retour",
        "total_contracts": "Total des Contrats",
        "total_weight": "Poids Total",
        "avg_items_per_box": "Articles/Boîte Moy.",
        "active_contracts": "Contrats Actifs",
        "recent_contracts": "Contrats Récents",
        "recent_activity": "Activité Récente",
        "view_all": "Voir Tout",
        "no_contracts": "Aucun contrat pour le moment",
        "no_activity": "Aucune activité récente",
    },
    "de": {
        "dashboard": "Übersicht",
        "analytics": "Analysen",
        "contracts": "Verträge",
        "new_contract": "Neuer Vertrag",
        "manage_issues": "Probleme Verwalten",
        "profile": "Profil",
        "logout": "Abmelden",
        "welcome": "Willkommen zurück",
        "total_contracts": "Verträge Gesamt",
        "total_weight": "Gesamtgewicht",
        "avg_items_per_box": "Ø Artikel/Karton",
        "active_contracts": "Aktive Verträge",
        "recent_contracts": "Neueste Verträge",
        "recent_activity": "Letzte Aktivität",
        "view_all": "Alle Anzeigen",
        "no_contracts": "Noch keine Verträge",
        "no_activity": "Keine aktuelle Aktivität",
    },
    "ar": {
        "dashboard": "لوحة التحكم",
        "analytics": "التحليلات",
        "contracts": "العقود",
        "new_contract": "عقد جديد",
        "manage_issues": "إدارة المشكلات",
        "profile": "الملف الشخصي",
        "logout": "تسجيل الخروج",
        "welcome": "مرحبًا بعودتك",
        "total_contracts": "إجمالي العقود",
        "total_weight": "الوزن الإجمالي",
        "avg_items_per_box": "متوسط العناصر لكل صندوق",
        "active_contracts": "العقود النشطة",
        "recent_contracts": "أحدث العقود",
        "recent_activity": "النشاط الأخير",
        "view_all": "عرض الكل",
        "no_contracts": "لا توجد عقود بعد",
        "no_activity": "لا يوجد نشاط حديث",
    },
    "zh": {
        "dashboard": "仪表板",
        "analytics": "分析",
        "contracts": "合同",
        "new_contract": "新建合同",
        "manage_issues": "问题管理",
        "profile": "个人资料",
        "logout": "退出登录",
        "welcome": "欢迎回来",
        "total_contracts": "合同总数",
        "total_weight": "总重量",
        "avg_items_per_box": "每箱平均件数",
        "active_contracts": "进行中的合同",
        "recent_contracts": "最近的合同",
        "recent_activity": "最近活动",
        "view_all": "查看全部",
        "no_contracts": "暂无合同",
        "no_activity": "暂无最近活动",
    },
}


def normalize_language(code):
    return code if code in LABELS else DEFAULT_LANGUAGE


def labels_for(code):
    """English labels overlaid with the chosen language's translations."""
    merged = dict(LABELS[DEFAULT_LANGUAGE])
    merged.update(LABELS.get(code, {}))
    return merged


def translate(key, code=DEFAULT_LANGUAGE):
    return labels_for(code).get(key, key)


def text_direction(code):
    return "rtl" if code in RTL_LANGUAGES else "ltr"
