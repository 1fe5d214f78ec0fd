"""
JavaScript runtime shipped inside the compiled artifact.

ENGINE_SCRIPT is the standalone re-implementation of visibility.py,
navigation.py, resolver.py and the answer transform / postcode parsing of
submission_service.py and postcode_service.py. It has no DOM access so a
CommonJS host can load it and run the same scenarios as the Python tests.
DOM_SCRIPT binds that engine to the generated markup.

Both are plain strings; the compiler only prepends the CONFIG literal.
"""

ENGINE_SCRIPT = r"""
  var CHOICE_TYPES = ['single_choice', 'multiple_choice'];
  var CONTACT_FIELDS = ['firstName', 'lastName', 'phone', 'email'];
  var ADDRESS_LABELS = [
    ['fullAddress', 'Full Address'],
    ['buildingNumber', 'Building Number'],
    ['street', 'Street'],
    ['town', 'Town'],
    ['postcode', 'Postcode']
  ];
  var CONTACT_LABELS = [
    ['firstName', 'First Name'],
    ['lastName', 'Last Name'],
    ['phone', 'Phone'],
    ['email', 'Email'],
    ['termsAccepted', 'Terms Accepted']
  ];

  function findQuestion(questions, id) {
    for (var i = 0; i < questions.length; i++) {
      if (questions[i].id === id) return questions[i];
    }
    return null;
  }

  function questionIndex(questions, id) {
    for (var i = 0; i < questions.length; i++) {
      if (questions[i].id === id) return i;
    }
    return -1;
  }

  function hasAnswer(answers, id) {
    return Object.prototype.hasOwnProperty.call(answers, id) &&
      answers[id] !== undefined && answers[id] !== null;
  }

  function combineResults(results, logic) {
    if (logic === 'OR') {
      return results.some(function (result) { return result; });
    }
    return results.every(function (result) { return result; });
  }

  // Strict rule used for question visibility
  function evaluateCondition(condition, answers, questions) {
    var source = findQuestion(questions, condition.questionId);
    if (!source || !hasAnswer(answers, condition.questionId)) return false;

    var answer = answers[condition.questionId];
    var values = condition.values || [];

    if (CHOICE_TYPES.indexOf(source.type) !== -1) {
      var selected = Array.isArray(answer) ? answer : [answer];
      return values.some(function (value) { return selected.indexOf(value) !== -1; });
    }
    if (source.type === 'text_input') {
      return values.length > 0 && values[0] === answer;
    }
    return false;
  }

  function isVisible(entity, answers, questions) {
    var conditions = entity.conditions || [];
    if (conditions.length === 0) return true;

    // Questions only depend on earlier questions
    var ownIndex = -1;
    if (entity.type !== undefined) {
      ownIndex = questions.indexOf(entity);
      if (ownIndex === -1) ownIndex = questionIndex(questions, entity.id);
    }
    var results = conditions.map(function (condition) {
      if (ownIndex !== -1 && questionIndex(questions, condition.questionId) >= ownIndex) {
        return false;
      }
      return evaluateCondition(condition, answers, questions);
    });
    return combineResults(results, entity.conditionLogic);
  }

  function stringify(value) {
    if (value === null || value === undefined) return '';
    if (typeof value === 'boolean') return value ? 'true' : 'false';
    if (typeof value === 'number') return String(value);
    if (typeof value === 'string') return value;
    return JSON.stringify(value);
  }

  // Relaxed rule used for success pages only: ignores the source type
  function evaluateSuccessCondition(condition, answers, questions) {
    var source = findQuestion(questions, condition.questionId);
    if (!source || !hasAnswer(answers, condition.questionId)) return false;

    var answer = answers[condition.questionId];
    var values = condition.values || [];
    var candidates;

    if (Array.isArray(answer)) {
      candidates = answer.map(function (item) { return stringify(item); });
    } else if (typeof answer === 'object') {
      candidates = Object.keys(answer).map(function (key) { return stringify(answer[key]); });
    } else {
      return values.indexOf(answer) !== -1;
    }
    return candidates.some(function (candidate) { return values.indexOf(candidate) !== -1; });
  }

  function successPageMatches(page, answers, questions) {
    var conditions = page.conditions || [];
    if (conditions.length === 0) return true;
    var results = conditions.map(function (condition) {
      return evaluateSuccessCondition(condition, answers, questions);
    });
    return combineResults(results, page.conditionLogic);
  }

  function resolveRedirect(successPages, answers, questions, defaultUrl) {
    for (var i = 0; i < successPages.length; i++) {
      if (successPageMatches(successPages[i], answers, questions)) {
        return successPages[i].url;
      }
    }
    return defaultUrl;
  }

  function activeQuestionIds(questions, answers) {
    return questions
      .filter(function (question) { return isVisible(question, answers, questions); })
      .map(function (question) { return question.id; });
  }

  function isFilled(value) {
    return typeof value === 'string' && value.trim() !== '';
  }

  function isAnswered(question, answer) {
    if (question.type === 'multiple_choice') {
      return Array.isArray(answer) && answer.length > 0;
    }
    if (question.type === 'text_input') {
      return isFilled(answer);
    }
    if (question.type === 'contact_form') {
      if (!answer || typeof answer !== 'object' || Array.isArray(answer)) return false;
      return CONTACT_FIELDS.every(function (field) { return isFilled(answer[field]); }) &&
        answer.termsAccepted === true;
    }
    return !!answer;
  }

  function optionText(question, optionId) {
    var options = question.options || [];
    for (var i = 0; i < options.length; i++) {
      if (options[i].id === optionId) return options[i].text;
    }
    return optionId;
  }

  function labelled(answer, labels) {
    var result = {};
    if (!answer || typeof answer !== 'object' || Array.isArray(answer)) return result;
    labels.forEach(function (pair) {
      var value = answer[pair[0]];
      if (value !== undefined && value !== null) result[pair[1]] = value;
    });
    return result;
  }

  // Question text -> human readable answer, as posted to the webhook
  function transformAnswers(questions, answers) {
    var transformed = {};
    Object.keys(answers).forEach(function (questionId) {
      var question = findQuestion(questions, questionId);
      var answer = answers[questionId];
      if (!question || answer === undefined || answer === null) return;

      var key = question.text;
      if (question.type === 'single_choice') {
        transformed[key] = optionText(question, answer);
      } else if (question.type === 'multiple_choice') {
        var ids = Array.isArray(answer) ? answer : [answer];
        transformed[key] = ids.map(function (id) { return stringify(optionText(question, id)); }).join(', ');
      } else if (question.type === 'address') {
        transformed[key] = labelled(answer, ADDRESS_LABELS);
      } else if (question.type === 'contact_form') {
        transformed[key] = labelled(answer, CONTACT_LABELS);
      } else {
        transformed[key] = answer;
      }
    });
    return transformed;
  }

  function lookupUrl(question, settings, postcode) {
    var base = question.postcodeApi || settings.postcodeApiUrl;
    if (!base) return null;
    var url = base + (base.indexOf('?') === -1 ? '?' : '&') +
      'postcode=' + encodeURIComponent(postcode);
    if (settings.postcodeApiKey) {
      url += '&key=' + encodeURIComponent(settings.postcodeApiKey);
    }
    return url;
  }

  function parseCandidates(body) {
    var list = [];
    if (Array.isArray(body)) {
      list = body;
    } else if (body && typeof body === 'object') {
      list = body.addresses;
      if (list === undefined || list === null) list = body.Addresses;
    }
    if (!Array.isArray(list)) return [];
    return list
      .filter(function (item) { return item && typeof item === 'object' && !Array.isArray(item); })
      .map(function (item) {
        return {
          fullAddress: stringify(item.Address),
          buildingNumber: stringify(item.BuildingNumber),
          street: stringify(item.StreetAddress),
          town: stringify(item.Town),
          postcode: stringify(item.Postcode)
        };
      });
  }

  function createSession(definition, initialAnswers) {
    var questions = definition.questions || [];
    var settings = definition.settings || {};
    var session = {
      answers: initialAnswers || {},
      activeIds: [],
      currentIndex: null,
      submitted: false
    };

    function indexOf(id) {
      var index = questionIndex(questions, id);
      return index === -1 ? null : index;
    }

    function recompute() {
      session.activeIds = activeQuestionIds(questions, session.answers);
    }

    function firstActiveIndex() {
      return session.activeIds.length ? indexOf(session.activeIds[0]) : null;
    }

    function onAnswersChanged() {
      recompute();
      var currentId = session.currentIndex === null ? null : questions[session.currentIndex].id;
      if (session.activeIds.indexOf(currentId) === -1) {
        session.currentIndex = firstActiveIndex();
      }
    }

    session.currentQuestion = function () {
      if (session.submitted || session.currentIndex === null) return null;
      return questions[session.currentIndex];
    };

    session.position = function () {
      var question = session.currentQuestion();
      return question ? session.activeIds.indexOf(question.id) : -1;
    };

    session.progress = function () {
      if (session.submitted) return 1;
      var position = session.position();
      if (!session.activeIds.length || position === -1) return 0;
      return (position + 1) / session.activeIds.length;
    };

    session.isLast = function () {
      var position = session.position();
      return position !== -1 && position === session.activeIds.length - 1;
    };

    session.canGoBack = function () {
      return session.position() > 0;
    };

    session.canAdvance = function () {
      if (session.submitted) return false;
      var question = session.currentQuestion();
      if (!question || !question.required) return true;
      return isAnswered(question, session.answers[question.id]);
    };

    session.setAnswer = function (questionId, value) {
      if (value === undefined || value === null) {
        delete session.answers[questionId];
      } else {
        session.answers[questionId] = value;
      }
      onAnswersChanged();
    };

    session.toggleOption = function (questionId, optionId) {
      var current = session.answers[questionId];
      var selected = Array.isArray(current) ? current.slice() : [];
      var at = selected.indexOf(optionId);
      if (at === -1) {
        selected.push(optionId);
      } else {
        selected.splice(at, 1);
      }
      session.answers[questionId] = selected;
      onAnswersChanged();
      return selected;
    };

    session.next = function () {
      if (session.submitted) return false;
      var question = session.currentQuestion();
      if (!question) {
        session.submitted = true;
        return true;
      }
      if (!session.canAdvance()) return false;

      var position = session.position();
      if (position < session.activeIds.length - 1) {
        session.currentIndex = indexOf(session.activeIds[position + 1]);
      } else {
        session.submitted = true;
      }
      return true;
    };

    session.back = function () {
      var position = session.position();
      if (session.submitted || position <= 0) return false;
      session.currentIndex = indexOf(session.activeIds[position - 1]);
      return true;
    };

    session.reset = function () {
      Object.keys(session.answers).forEach(function (key) { delete session.answers[key]; });
      session.submitted = false;
      recompute();
      session.currentIndex = firstActiveIndex();
    };

    session.redirectUrl = function () {
      if (!session.submitted) return null;
      return resolveRedirect(settings.successPages || [], session.answers, questions, settings.submitUrl || '');
    };

    recompute();
    session.currentIndex = firstActiveIndex();
    return session;
  }
"""

DOM_SCRIPT = r"""
  function mount(config) {
    var P = config.prefix;
    var definition = config.definition;
    var questions = definition.questions || [];
    var settings = definition.settings || {};
    var session = createSession(definition, loadAnswers());

    var backButton = byId('back-button');
    var progressBar = byId('progress-bar');
    var navigation = byId('form-navigation');
    var thankYouScreen = byId('thank-you-screen');
    var emptyScreen = byId('empty-screen');

    function byId(suffix) {
      return document.getElementById(P + suffix);
    }

    function cssString(value) {
      if (window.CSS && CSS.escape) return CSS.escape(String(value));
      return String(value).replace(/["\\\n]/g, function (ch) {
        return ch === '\n' ? '\\a ' : '\\' + ch;
      });
    }

    function optionElements(question) {
      return document.querySelectorAll('.' + P + 'option[data-question-id="' + cssString(question.id) + '"]');
    }

    function loadAnswers() {
      try {
        var raw = window.sessionStorage.getItem(config.storageKey);
        var parsed = raw ? JSON.parse(raw) : {};
        return parsed && typeof parsed === 'object' && !Array.isArray(parsed) ? parsed : {};
      } catch (err) {
        console.warn('Could not restore saved answers:', err);
        return {};
      }
    }

    function persist() {
      try {
        window.sessionStorage.setItem(config.storageKey, JSON.stringify(session.answers));
      } catch (err) {
        console.warn('Could not save answers:', err);
      }
    }

    function clearPersisted() {
      try {
        window.sessionStorage.removeItem(config.storageKey);
      } catch (err) {
        console.warn('Could not clear saved answers:', err);
      }
    }

    function changed() {
      persist();
      render();
    }

    function syncOptions(question) {
      var answer = session.answers[question.id];
      var selected = Array.isArray(answer) ? answer : (answer === undefined ? [] : [answer]);
      optionElements(question).forEach(function (el) {
        if (selected.indexOf(el.dataset.optionId) !== -1) {
          el.classList.add('selected');
        } else {
          el.classList.remove('selected');
        }
      });
    }

    function syncAddress(question) {
      var answer = session.answers[question.id];
      var chosen = byId('address-selected-' + question.id);
      if (chosen) {
        chosen.textContent = answer && answer.fullAddress ? answer.fullAddress : '';
      }
    }

    function syncInputs() {
      questions.forEach(function (question) {
        var answer = session.answers[question.id];
        if (question.type === 'single_choice' || question.type === 'multiple_choice') {
          syncOptions(question);
        } else if (question.type === 'text_input') {
          byId('input-' + question.id).value = typeof answer === 'string' ? answer : '';
        } else if (question.type === 'address') {
          byId('postcode-' + question.id).value = answer && answer.postcode ? answer.postcode : '';
          byId('lookup-error-' + question.id).textContent = '';
          var select = byId('address-select-' + question.id);
          select.innerHTML = '';
          select.style.display = 'none';
          syncAddress(question);
        } else if (question.type === 'contact_form') {
          CONTACT_FIELDS.forEach(function (field) {
            byId('contact-' + field + '-' + question.id).value = answer && typeof answer[field] === 'string' ? answer[field] : '';
          });
          byId('contact-terms-' + question.id).checked = !!(answer && answer.termsAccepted === true);
        }
      });
    }

    function render() {
      var current = session.currentQuestion();

      questions.forEach(function (question) {
        var block = byId('question-' + question.id);
        if (block) {
          block.style.display = current && current.id === question.id ? 'flex' : 'none';
        }
        var nextButton = byId('next-button-' + question.id);
        if (nextButton) {
          var last = session.activeIds.indexOf(question.id) === session.activeIds.length - 1;
          nextButton.innerHTML = (last ? 'Submit' : 'Next') + ' <span class="' + P + 'next-icon">&rarr;</span>';
        }
      });

      thankYouScreen.style.display = session.submitted ? 'block' : 'none';
      emptyScreen.style.display = !session.submitted && !current ? 'block' : 'none';
      navigation.style.display = session.submitted ? 'none' : 'flex';
      backButton.disabled = !session.canGoBack();
      progressBar.style.width = (session.progress() * 100) + '%';

      if (current) {
        var currentNext = byId('next-button-' + current.id);
        if (currentNext) {
          currentNext.disabled = !session.canAdvance();
          // Single choice auto-advances; keep the button for the final step
          if (current.type === 'single_choice') {
            currentNext.style.display = session.isLast() ? 'flex' : 'none';
          } else {
            currentNext.style.display = 'flex';
          }
        }
      }
    }

    function submitted() {
      if (settings.zapierWebhookUrl) {
        try {
          fetch(settings.zapierWebhookUrl, {
            method: 'POST',
            headers: { 'Content-Type': 'application/json' },
            body: JSON.stringify(transformAnswers(questions, session.answers)),
            mode: 'no-cors'
          }).catch(function (err) {
            console.error('Error submitting form:', err);
          });
        } catch (err) {
          console.error('Error submitting form:', err);
        }
      }

      var url = session.redirectUrl();
      if (url) {
        setTimeout(function () {
          window.location.href = url;
        }, config.redirectDelayMs);
      }
    }

    function goNext() {
      var wasSubmitted = session.submitted;
      if (session.next()) {
        render();
        if (!wasSubmitted && session.submitted) submitted();
      }
    }

    function goBack() {
      if (session.back()) render();
    }

    function resetForm() {
      session.reset();
      clearPersisted();
      syncInputs();
      render();
    }

    function bindChoice(question) {
      optionElements(question).forEach(function (el) {
        el.addEventListener('click', function () {
          var optionId = el.dataset.optionId;
          if (question.type === 'multiple_choice') {
            session.toggleOption(question.id, optionId);
            syncOptions(question);
            changed();
            return;
          }
          session.setAnswer(question.id, optionId);
          syncOptions(question);
          changed();
          if (!session.isLast()) {
            setTimeout(function () {
              var current = session.currentQuestion();
              if (current && current.id === question.id) goNext();
            }, 300);
          }
        });
      });
    }

    function bindText(question) {
      byId('input-' + question.id).addEventListener('input', function (e) {
        session.setAnswer(question.id, e.target.value);
        changed();
      });
    }

    function bindAddress(question) {
      var button = byId('lookup-button-' + question.id);
      var input = byId('postcode-' + question.id);
      var select = byId('address-select-' + question.id);
      var error = byId('lookup-error-' + question.id);
      var candidates = [];

      button.addEventListener('click', function () {
        if (button.disabled) return;
        var postcode = input.value.trim();
        error.textContent = '';
        if (!postcode) {
          error.textContent = 'Please enter a postcode.';
          return;
        }
        var url = lookupUrl(question, settings, postcode);
        if (!url) {
          error.textContent = 'Address lookup is not available.';
          return;
        }

        button.disabled = true;
        fetch(url)
          .then(function (response) {
            if (!response.ok) throw new Error('Lookup failed with status ' + response.status);
            return response.json();
          })
          .then(function (body) {
            candidates = parseCandidates(body);
            select.innerHTML = '';
            if (!candidates.length) {
              select.style.display = 'none';
              error.textContent = 'No addresses found for that postcode.';
              return;
            }
            var placeholder = document.createElement('option');
            placeholder.value = '';
            placeholder.textContent = 'Select your address';
            select.appendChild(placeholder);
            candidates.forEach(function (candidate, index) {
              var option = document.createElement('option');
              option.value = String(index);
              option.textContent = candidate.fullAddress;
              select.appendChild(option);
            });
            select.style.display = 'block';
          })
          .catch(function (err) {
            console.error('Address lookup error:', err);
            error.textContent = 'We could not look up that postcode. Please try again.';
          })
          .then(function () {
            button.disabled = false;
          });
      });

      select.addEventListener('change', function () {
        var chosen = select.value === '' ? null : candidates[parseInt(select.value, 10)];
        session.setAnswer(question.id, chosen || null);
        syncAddress(question);
        changed();
      });
    }

    function bindContact(question) {
      var terms = byId('contact-terms-' + question.id);

      function update() {
        var value = {};
        CONTACT_FIELDS.forEach(function (field) {
          value[field] = byId('contact-' + field + '-' + question.id).value;
        });
        value.termsAccepted = terms.checked;
        session.setAnswer(question.id, value);
        changed();
      }

      CONTACT_FIELDS.forEach(function (field) {
        byId('contact-' + field + '-' + question.id).addEventListener('input', update);
      });
      terms.addEventListener('change', update);
    }

    function bindTooltips() {
      document.querySelectorAll('.' + P + 'info-icon').forEach(function (icon) {
        icon.addEventListener('click', function (e) {
          e.stopPropagation();
          var tooltip = byId('tooltip-' + icon.parentElement.dataset.optionId);
          if (!tooltip) return;
          var open = tooltip.style.display === 'block';
          document.querySelectorAll('.' + P + 'info-tooltip').forEach(function (t) {
            t.style.display = 'none';
          });
          tooltip.style.display = open ? 'none' : 'block';
        });
      });
      document.addEventListener('click', function (e) {
        if (!e.target.closest('.' + P + 'info-button')) {
          document.querySelectorAll('.' + P + 'info-tooltip').forEach(function (t) {
            t.style.display = 'none';
          });
        }
      });
    }

    questions.forEach(function (question) {
      if (question.type === 'single_choice' || question.type === 'multiple_choice') {
        bindChoice(question);
      } else if (question.type === 'text_input') {
        bindText(question);
      } else if (question.type === 'address') {
        bindAddress(question);
      } else if (question.type === 'contact_form') {
        bindContact(question);
      }
      var nextButton = byId('next-button-' + question.id);
      if (nextButton) nextButton.addEventListener('click', goNext);
    });

    byId('empty-submit-button').addEventListener('click', goNext);
    backButton.addEventListener('click', goBack);
    byId('start-over-button').addEventListener('click', resetForm);
    bindTooltips();

    syncInputs();
    render();
  }
"""

EXPORTS_SCRIPT = r"""
  if (typeof module !== 'undefined' && module.exports) {
    module.exports = {
      config: CONFIG,
      evaluateCondition: evaluateCondition,
      evaluateSuccessCondition: evaluateSuccessCondition,
      isVisible: isVisible,
      successPageMatches: successPageMatches,
      resolveRedirect: resolveRedirect,
      activeQuestionIds: activeQuestionIds,
      isAnswered: isAnswered,
      transformAnswers: transformAnswers,
      lookupUrl: lookupUrl,
      parseCandidates: parseCandidates,
      stringify: stringify,
      createSession: createSession
    };
  } else if (typeof document !== 'undefined') {
    if (document.readyState === 'loading') {
      document.addEventListener('DOMContentLoaded', function () { mount(CONFIG); });
    } else {
      mount(CONFIG);
    }
  }
"""
