from celery import shared_task
from django.apps import apps


DEFAULT_SCHEDULES = {
    # Market data caches live 24h; refresh them before they expire
    'market_data_refresh': {
        'task': 'refresh_market_data',
        'crontab': {'hour': 4, 'minute': 0},  # 4 AM UTC
        'enabled': True,
        'expires': 3600
    },
}


@shared_task
def initialize_schedules():
    CrontabSchedule = apps.get_model('django_celery_beat', 'CrontabSchedule')
    PeriodicTask = apps.get_model('django_celery_beat', 'PeriodicTask')

    for name, config in DEFAULT_SCHEDULES.items():
        schedule, _ = CrontabSchedule.objects.get_or_create(
            minute=config['crontab'].get('minute', '*'),
            hour=config['crontab'].get('hour', '*'),
            day_of_week=config['crontab'].get('day_of_week', '*'),
            day_of_month=config['crontab'].get('day_of_month', '*'),
            month_of_year=config['crontab'].get('month_of_year', '*')
        )
        PeriodicTask.objects.update_or_create(
            name=name,
            defaults={
                'task': config['task'],
                'crontab': schedule,
                'enabled': config['enabled'],
                'expire_seconds': config['expires']
            }
        )



# Local development:
# :: worker
# celery -A domainvalue worker -l INFO --pool=solo

# :: beat
# celery -A domainvalue beat -l INFO --scheduler django_celery_beat.schedulers:DatabaseScheduler
