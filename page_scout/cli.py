# === FILE: page_scout/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска PageScout через командную строку.

Команды:
  crawl URL   Обойти страницу и её внутренние ссылки, вывести/сохранить отчёты
  check URL   Только проверка соответствия (robots.txt, ToS, лимиты)
  config      Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (только консоль, если не указан)
  --log-format FORMAT Формат логирования

Команда crawl опции:
  --scroll / --max-scrolls N   Прокрутка бесконечных лент
  --screenshots / --pdf        Скриншоты и PDF
  --max-depth N                0 – только исходная страница
  --json PATH / --html PATH    Сохранить отчёты в файлы
  --pretty                     Отступ 2 в JSON-выводе
  --crawl-timeout SEC          Таймаут всего обхода (секунд)

Пример:
  page-scout crawl https://example.com --max-depth 1 --json report.json
"""
import sys
import asyncio
import json
from pathlib import Path

import click
from pydantic import ValidationError

from page_scout import __version__
from page_scout.config import CrawlRequest, load_config
from page_scout.engine import check_url, start_crawl
from page_scout.errors import ComplianceDenied, InputError, PageScoutError, ResourceFailure
from page_scout.logger import init_logging
from page_scout.report.html_report import render_html
from page_scout.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])

EXIT_ERROR = 1
EXIT_DENIED = 2


def print_error(message: str, code: int = EXIT_ERROR):
    click.secho(message, fg='red', err=True)
    sys.exit(code)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='PageScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (только консоль, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд PageScout CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--scroll', 'handle_infinite_scroll', is_flag=True, help='Прокручивать бесконечные ленты')
@click.option('--max-scrolls', 'max_scrolls', type=int, default=5, show_default=True,
              help='Максимум прокруток вниз')
@click.option('--screenshots', 'take_screenshots', is_flag=True, help='Снимать скриншоты')
@click.option('--pdf', 'generate_pdf', is_flag=True, help='Сохранить страницу в PDF')
@click.option('--max-depth', 'max_depth', type=int, default=1, show_default=True,
              help='0 – только исходная страница, 1 – плюс внутренние ссылки')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option(
    '--html', '-h', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблонами (по умолчанию встроенный шаблон)'
)
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.option('--crawl-timeout', 'crawl_timeout', type=float, default=None,
              help='Таймаут всего обхода (секунд)')
@click.pass_context
def crawl(ctx, url, handle_infinite_scroll, max_scrolls, take_screenshots, generate_pdf,
          max_depth, json_output, html_output, template_dir, pretty, crawl_timeout):
    """Обойти URL и сгенерировать отчёты."""
    cfg = ctx.obj['config']
    try:
        request = CrawlRequest(
            url=url,
            handle_infinite_scroll=handle_infinite_scroll,
            max_scrolls=max_scrolls,
            take_screenshots=take_screenshots,
            generate_pdf=generate_pdf,
            max_depth=max_depth,
        )
    except ValidationError as e:
        print_error(f'Некорректные параметры: {e.errors()[0]["msg"]}')

    try:
        if crawl_timeout:
            result = asyncio.run(
                asyncio.wait_for(start_crawl(cfg, request), timeout=crawl_timeout)
            )
        else:
            result = asyncio.run(start_crawl(cfg, request))
    except asyncio.TimeoutError:
        print_error(f'Обход не завершён за {crawl_timeout} секунд')
    except InputError as e:
        print_error(f'Некорректный URL: {e}')
    except ComplianceDenied as e:
        print_error(f'Отказано: {e.decision.message} ({e.reason.value})', EXIT_DENIED)
    except ResourceFailure as e:
        print_error(f'Ошибка браузера: {e}')
    except PageScoutError as e:
        print_error(f'Ошибка при обходе: {e}')

    # Если не сохраняем в файл, печатаем в stdout
    if not json_output and not html_output:
        indent = 2 if pretty else None
        click.echo(json.dumps(result.to_dict(), ensure_ascii=False, indent=indent))
        return

    if json_output:
        try:
            saved_json = render_json(result, json_output, pretty=pretty)
            click.echo(f'JSON report: {saved_json}')
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(result, template_dir, html_output)
            click.echo(f'HTML report: {saved_html}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('check', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.pass_context
def check(ctx, url):
    """Проверить, разрешён ли обход URL (без запуска браузера)."""
    cfg = ctx.obj['config']
    decision = asyncio.run(check_url(cfg, url.strip()))
    click.echo(json.dumps(decision.to_dict(), ensure_ascii=False))
    if not decision.allowed:
        sys.exit(EXIT_DENIED)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
