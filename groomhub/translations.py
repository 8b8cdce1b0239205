"""English/Spanish string table for the client app and API messages."""
from __future__ import annotations

from flask import current_app, has_request_context, request

SUPPORTED_LANGUAGES = ("en", "es")

TRANSLATIONS: dict[str, dict[str, str]] = {
    # Navigation
    "nav.dashboard": {"en": "Dashboard", "es": "Panel"},
    "nav.clients": {"en": "Clients", "es": "Clientes"},
    "nav.pets": {"en": "Pets", "es": "Mascotas"},
    "nav.appointments": {"en": "Appointments", "es": "Citas"},
    "nav.services": {"en": "Services", "es": "Servicios"},
    "nav.inventory": {"en": "Inventory", "es": "Inventario"},
    "nav.timeTracking": {"en": "Time Tracking", "es": "Registro de Tiempo"},
    "nav.employees": {"en": "Employees", "es": "Empleados"},
    "nav.reports": {"en": "Reports", "es": "Reportes"},
    "nav.payroll": {"en": "Payroll", "es": "Nómina"},
    "nav.settings": {"en": "Settings", "es": "Configuración"},
    # Common
    "common.add": {"en": "Add", "es": "Agregar"},
    "common.cancel": {"en": "Cancel", "es": "Cancelar"},
    "common.save": {"en": "Save", "es": "Guardar"},
    "common.edit": {"en": "Edit", "es": "Editar"},
    "common.delete": {"en": "Delete", "es": "Eliminar"},
    "common.search": {"en": "Search", "es": "Buscar"},
    "common.new": {"en": "New", "es": "Nuevo"},
    "common.welcome": {"en": "Welcome to your Hub!", "es": "Bienvenido a tu Hub!"},
    # Personalization
    "personalization.title": {"en": "Personalization", "es": "Personalización"},
    "personalization.description": {
        "en": "Configure your business preferences and branding",
        "es": "Configure las preferencias y marca de su negocio",
    },
    "personalization.businessName": {"en": "Business Name", "es": "Nombre del Negocio"},
    "personalization.businessHours": {"en": "Business Hours", "es": "Horario de Negocio"},
    "personalization.primaryColor": {"en": "Primary Color", "es": "Color Principal"},
    "personalization.secondaryColor": {"en": "Secondary Color", "es": "Color Secundario"},
    "personalization.language": {"en": "Language", "es": "Idioma"},
    "personalization.settingsSaved": {
        "en": "Settings saved successfully!",
        "es": "¡Configuración guardada exitosamente!",
    },
    "personalization.settingsError": {
        "en": "Failed to save settings. Please try again.",
        "es": "Error al guardar la configuración. Por favor intente de nuevo.",
    },
    # Appointments
    "appointments.title": {"en": "Appointments", "es": "Citas"},
    "appointments.newAppointment": {"en": "New Appointment", "es": "Nueva Cita"},
    "appointments.unassigned": {"en": "Unassigned", "es": "Sin asignar"},
    "appointments.unknownPet": {"en": "Unknown Pet", "es": "Mascota Desconocida"},
    "appointments.unknownClient": {"en": "Unknown Client", "es": "Cliente Desconocido"},
    "appointments.booked": {
        "en": "Appointment request submitted for {pet} on {date} at {time}.",
        "es": "Solicitud de cita enviada para {pet} el {date} a las {time}.",
    },
    "appointments.slotTaken": {
        "en": "The {time} slot is no longer available.",
        "es": "El horario de las {time} ya no está disponible.",
    },
    "appointments.cancelled": {"en": "Appointment cancelled.", "es": "Cita cancelada."},
    # Payments
    "payment.cashRecorded": {"en": "Cash payment recorded!", "es": "¡Pago en efectivo registrado!"},
    "payment.cardProcessing": {
        "en": "Card payment initiated.",
        "es": "Pago con tarjeta iniciado.",
    },
    "payment.athmovilInitiated": {
        "en": "ATH Móvil payment initiated!",
        "es": "¡Pago ATH Móvil iniciado!",
    },
    # Inventory
    "inventory.title": {"en": "Inventory", "es": "Inventario"},
    "inventory.addProduct": {"en": "Add Product", "es": "Agregar Producto"},
    "inventory.scanBarcode": {"en": "Scan Barcode", "es": "Escanear Código"},
    "inventory.lowStock": {"en": "Low stock", "es": "Stock bajo"},
    # Payroll / timesheet
    "payroll.title": {"en": "Payroll", "es": "Nómina"},
    "payroll.previousPayPeriod": {"en": "Previous Pay Period", "es": "Período Anterior"},
    "payroll.nextPayPeriod": {"en": "Next Pay Period", "es": "Período Siguiente"},
    "payroll.currentPayPeriod": {"en": "Current Pay Period", "es": "Período Actual"},
    "payroll.hoursWorked": {"en": "Hours Worked", "es": "Horas Trabajadas"},
    "payroll.grossPay": {"en": "Gross Pay", "es": "Pago Bruto"},
    "timesheet.title": {"en": "Timesheet", "es": "Hoja de Tiempo"},
    "timeTracking.clockedIn": {"en": "{name} clocked in.", "es": "{name} registró entrada."},
    "timeTracking.clockedOut": {"en": "{name} clocked out.", "es": "{name} registró salida."},
    "timeTracking.alreadyClockedIn": {
        "en": "{name} is already clocked in.",
        "es": "{name} ya registró su entrada.",
    },
    "timeTracking.invalidPin": {"en": "Invalid PIN.", "es": "PIN inválido."},
    # Reports
    "reports.title": {"en": "Reports", "es": "Reportes"},
    "reports.totalRevenue": {"en": "Total Revenue", "es": "Ingresos Totales"},
    "reports.dogs": {"en": "Dogs", "es": "Perros"},
    "reports.cats": {"en": "Cats", "es": "Gatos"},
    "reports.other": {"en": "Other", "es": "Otros"},
    # API errors
    "errors.notFound": {"en": "{resource} not found", "es": "{resource} no encontrado"},
    "errors.unauthorized": {
        "en": "Authentication required. Please log in to continue.",
        "es": "Se requiere autenticación. Inicie sesión para continuar.",
    },
    "errors.demoReadOnly": {
        "en": "The demo business is read-only.",
        "es": "El negocio de demostración es de solo lectura.",
    },
}


def translate(key: str, language: str = "en", **params: object) -> str:
    """Look up ``key`` in ``language`` and fill ``{param}`` placeholders."""
    entry = TRANSLATIONS.get(key)
    if entry is None:
        if has_request_context():
            current_app.logger.warning("Translation missing for key: %s", key)
        return key

    text = entry.get(language) or entry.get("en") or key
    for name, value in params.items():
        text = text.replace("{" + name + "}", str(value))
    return text


def translations_for(language: str) -> dict[str, str]:
    return {key: translate(key, language) for key in TRANSLATIONS}


def resolve_language(business_id: int | None = None) -> str:
    """Pick the response language for the current request.

    Order: ``lang`` query argument, the business ``language`` setting,
    the ``Accept-Language`` header, then ``DEFAULT_LANGUAGE``.
    """
    default = current_app.config.get("DEFAULT_LANGUAGE", "en")
    if not has_request_context():
        return default

    requested = (request.args.get("lang") or "").strip().lower()
    if requested in SUPPORTED_LANGUAGES:
        return requested

    if business_id is not None:
        from .models import Setting

        setting = Setting.query.filter_by(business_id=business_id, key="language").first()
        if setting and setting.value in SUPPORTED_LANGUAGES:
            return setting.value

    best = request.accept_languages.best_match(SUPPORTED_LANGUAGES)
    return best or default
