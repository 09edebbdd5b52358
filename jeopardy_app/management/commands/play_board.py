import random

from django.core.management.base import BaseCommand, CommandError

from jeopardy_app.BoardBuilder import AcquisitionPolicy, BoardBuilder
from jeopardy_app.BoardController import BoardController, TimerEffectScheduler
from jeopardy_app.BoardState import BoardState
from jeopardy_app.config import BoardConfig
from jeopardy_app.exceptions import ConfigurationError
from jeopardy_app.presenters import ConsoleBoardView


class Command(BaseCommand):
    help = 'Load a jeopardy board from the trivia provider and print it, optionally revealing cells'

    def add_arguments(self, parser):
        parser.add_argument(
            '--categories',
            type=int,
            default=None,
            help='Number of categories on the board (default: JEOPARDY_NUM_CATEGORIES)'
        )
        parser.add_argument(
            '--clues',
            type=int,
            default=None,
            help='Number of clues per category (default: JEOPARDY_CLUES_PER_CATEGORY)'
        )
        parser.add_argument(
            '--max-attempts',
            type=int,
            default=None,
            help='Give up after this many random category ids (default: keep trying)'
        )
        parser.add_argument(
            '--seed',
            type=int,
            default=None,
            help='Random seed for reproducible category picks'
        )
        parser.add_argument(
            '--reveal',
            nargs='*',
            default=[],
            metavar='KEY',
            help='Cell keys ("<category>_<clue>") to click, in order'
        )

    def handle(self, *args, **options):
        config = BoardConfig.from_settings()
        if options['categories'] is not None:
            config.num_categories = options['categories']
        if options['clues'] is not None:
            config.clues_per_category = options['clues']
        if options['max_attempts'] is not None:
            config.max_id_attempts = options['max_attempts']
        try:
            config.validate()
        except ConfigurationError as e:
            raise CommandError(str(e))

        builder = BoardBuilder(
            config=config,
            policy=AcquisitionPolicy.from_config(config),
            rng=random.Random(options['seed']),
        )
        view = ConsoleBoardView(stream=self.stdout)
        scheduler = TimerEffectScheduler()
        controller = BoardController(BoardState(), builder, view, scheduler=scheduler, config=config)

        if not controller.start():
            raise CommandError('Could not load a board')

        for cell_key in options['reveal']:
            if controller.handle_cell_key(cell_key) is None:
                self.stdout.write(self.style.WARNING(f'Nothing to reveal at {cell_key}'))

        scheduler.cancel_all()

        if options['reveal']:
            view.render_board(controller.board_state.categories)

        self.stdout.write(self.style.SUCCESS(
            f'Board with {controller.board_state.num_categories} categories '
            f'x {controller.board_state.clues_per_category} clues'
        ))
