# edara/services/templates.py
# Plantillas HTML: páginas de resultado de los enlaces por email y cuerpos de correo.
from jinja2 import DictLoader, Environment, select_autoescape

_BASE_STYLE = """
  body { font-family: Arial, sans-serif; display: flex; justify-content: center; align-items: center;
         min-height: 100vh; margin: 0; background-color: #f3f4f6; }
  .container { background: white; padding: 40px; border-radius: 12px; box-shadow: 0 4px 6px rgba(0,0,0,0.1);
               text-align: center; max-width: 450px; width: 90%; }
  .icon { width: 80px; height: 80px; border-radius: 50%; margin: 0 auto 20px; color: white;
          font-size: 40px; line-height: 80px; }
  h1 { color: #1f2937; margin-bottom: 10px; }
  p { color: #6b7280; line-height: 1.6; }
  a.home { display: inline-block; margin-top: 20px; padding: 12px 24px; background-color: #4F46E5;
           color: white; text-decoration: none; border-radius: 6px; }
  select { width: 100%; padding: 12px; border: 2px solid #e5e7eb; border-radius: 8px; font-size: 16px;
           margin-bottom: 20px; background: white; }
  button { width: 100%; padding: 14px 24px; background-color: #10B981; color: white; border: none;
           border-radius: 8px; font-size: 16px; cursor: pointer; }
"""

_TEMPLATES = {
    "layout.html": """<!DOCTYPE html>
<html dir="rtl" lang="ar">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{ title }}</title>
  <style>{{ style }}</style>
</head>
<body>
  <div class="container">
    {% block content %}{% endblock %}
    <a class="home" href="{{ home_url }}">العودة إلى الصفحة الرئيسية</a>
  </div>
</body>
</html>""",
    "result.html": """{% extends "layout.html" %}
{% block content %}
    <div class="icon" style="background-color: {{ '#10B981' if success else '#EF4444' }}">{% if success %}&#10003;{% else %}&#10007;{% endif %}</div>
    <h1>{{ title }}</h1>
    <p>{{ message }}</p>
{% endblock %}""",
    "cost_center_form.html": """{% extends "layout.html" %}
{% block content %}
    <div class="icon" style="background-color: #F59E0B">&#9638;</div>
    <h1>{{ title }}</h1>
    <p>رقم التذكرة: <strong>{{ ticket_number }}</strong></p>
    <p>يجب اختيار مركز التكلفة قبل الموافقة على طلب الشراء</p>
    <form method="GET" action="">
      <input type="hidden" name="ticketId" value="{{ ticket_id }}">
      <input type="hidden" name="action" value="approve">
      <input type="hidden" name="token" value="{{ token }}">
      <select name="costCenterId" required>
        <option value="">-- اختر مركز التكلفة --</option>
        {% for cc in cost_centers %}
        <option value="{{ cc.id }}">{{ cc.cost_center_name }} ({{ cc.cost_center_code }})</option>
        {% endfor %}
      </select>
      <button type="submit">موافقة مع مركز التكلفة</button>
    </form>
{% endblock %}""",
    "approval_request_email.html": """<div dir="rtl" style="font-family: Arial, sans-serif; text-align: right;">
  <h2>{{ kind }} بانتظار موافقتك</h2>
  <p>مرحباً {{ recipient_name }},</p>
  <p>{{ kind }} التالية بحاجة إلى موافقتك{% if purchase_phase %} كمسؤول مشتريات{% endif %} (المستوى {{ level }}):</p>
  <ul style="list-style: none; padding: 0;">
    <li style="margin: 10px 0;"><strong>رقم التذكرة:</strong> {{ ticket.ticket_number }}</li>
    <li style="margin: 10px 0;"><strong>الموضوع:</strong> {{ ticket.subject }}</li>
    <li style="margin: 10px 0;"><strong>الوصف:</strong> {{ ticket.description }}</li>
    <li style="margin: 10px 0;"><strong>مقدم الطلب:</strong> {{ ticket.user_name }}</li>
  </ul>
  <div style="margin: 20px 0;">
    <a href="{{ approve_url }}" style="background-color: #10B981; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; display: inline-block;">موافقة</a>
    &nbsp;
    <a href="{{ reject_url }}" style="background-color: #EF4444; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; display: inline-block;">رفض</a>
  </div>
</div>""",
    "creator_update_email.html": """<div dir="rtl" style="font-family: Arial, sans-serif; text-align: right;">
  <h2>{{ headline }}</h2>
  <p>مرحباً {{ recipient_name }},</p>
  <p>{{ message }}</p>
  <ul style="list-style: none; padding: 0;">
    <li style="margin: 10px 0;"><strong>رقم التذكرة:</strong> {{ ticket.ticket_number }}</li>
    <li style="margin: 10px 0;"><strong>الموضوع:</strong> {{ ticket.subject }}</li>
    {% if reason %}<li style="margin: 10px 0;"><strong>سبب الرفض:</strong> {{ reason }}</li>{% endif %}
  </ul>
  <div style="margin: 20px 0;">
    <a href="{{ ticket_url }}" style="background-color: #4F46E5; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; display: inline-block;">عرض التذكرة</a>
  </div>
</div>""",
}

env = Environment(loader=DictLoader(_TEMPLATES), autoescape=select_autoescape(["html"]))


def render(name: str, **context) -> str:
    context.setdefault("style", _BASE_STYLE)
    return env.get_template(name).render(**context)
